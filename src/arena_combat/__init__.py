"""Arena combat - turn-based combat resolution core."""
