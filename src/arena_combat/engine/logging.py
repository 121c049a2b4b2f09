"""Combat logging system for tracking and verifying combat engine output.

Provides a structured, in-memory record of everything a resolved fight did:
- Attacks, hits and follow-up strikes
- Healing, deaths, prevented deaths and revives
- Status effect application, ticks and expiry
- Boss phase transitions and the fight outcome

The presentation layer replays this log; the engine never renders it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .status import StatusEffect
    from .types import HitRecord, Unit


class LogEventType(str, Enum):
    """Types of log events."""

    # Fight lifecycle
    FIGHT_START = "fight_start"
    ROUND_START = "round_start"
    FIGHT_END = "fight_end"
    WINNER_DETERMINED = "winner_determined"

    # Attacks
    ATTACK = "attack"
    HIT = "hit"
    EXTRA_ATTACK = "extra_attack"
    ABILITY_CAST = "ability_cast"

    # HP changes
    HEAL = "heal"
    DEATH_PREVENTED = "death_prevented"
    DEATH = "death"
    REVIVE = "revive"

    # Status effects
    STATUS_APPLIED = "status_applied"
    STATUS_TICK = "status_tick"
    STATUS_EXPIRED = "status_expired"

    # Bosses
    PHASE_ENTERED = "phase_entered"


@dataclass
class UnitSnapshot:
    """Snapshot of a unit's combat state at a point in time."""

    name: str
    current_hp: int
    max_hp: int
    is_dead: bool
    statuses: dict[str, int]  # effect id -> stacks

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "current_hp": self.current_hp,
            "max_hp": self.max_hp,
            "is_dead": self.is_dead,
            "statuses": dict(self.statuses),
        }


@dataclass
class LogEntry:
    """A single log entry representing a combat event."""

    event_type: LogEventType
    round_number: int
    timestamp_order: int = 0  # Order within the fight for deterministic sorting

    unit_name: str | None = None
    target_name: str | None = None
    value: int | None = None
    hp_before: int | None = None
    hp_after: int | None = None
    max_hp: int | None = None
    effect_id: str | None = None
    is_critical: bool | None = None
    phase_index: int | None = None
    description: str | None = None

    # For fight start/end - all participants
    all_units: list[UnitSnapshot] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {
            "event_type": self.event_type.value,
            "round_number": self.round_number,
            "timestamp_order": self.timestamp_order,
        }

        optional = {
            "unit_name": self.unit_name,
            "target_name": self.target_name,
            "value": self.value,
            "hp_before": self.hp_before,
            "hp_after": self.hp_after,
            "max_hp": self.max_hp,
            "effect_id": self.effect_id,
            "is_critical": self.is_critical,
            "phase_index": self.phase_index,
            "description": self.description,
        }
        result.update({key: value for key, value in optional.items() if value is not None})

        if self.all_units is not None:
            result["all_units"] = [unit.to_dict() for unit in self.all_units]

        return result


@dataclass
class CombatLog:
    """Complete log of one combat session."""

    fight_id: str
    entries: list[LogEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "fight_id": self.fight_id,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    def get_entries_by_type(self, event_type: LogEventType) -> list[LogEntry]:
        """Get all entries of a specific type."""
        return [e for e in self.entries if e.event_type == event_type]

    def get_entries_for_round(self, round_number: int) -> list[LogEntry]:
        """Get all entries for a specific round."""
        return [e for e in self.entries if e.round_number == round_number]

    def get_entries_for_unit(self, name: str) -> list[LogEntry]:
        """Get all entries where the unit acted or was targeted."""
        return [e for e in self.entries if name in (e.unit_name, e.target_name)]

    def format_readable(self) -> str:
        """Format the log in a human-readable format."""
        lines: list[str] = [f"=== Combat Log ({self.fight_id}) ==="]

        current_round = -1
        for entry in self.entries:
            if entry.round_number != current_round and entry.round_number > 0:
                current_round = entry.round_number
                lines.append(f"\n--- Round {current_round} ---")
            lines.append(self._format_entry(entry))

        return "\n".join(lines)

    def _format_entry(self, entry: LogEntry) -> str:
        """Format a single log entry."""
        hp_change = ""
        if entry.hp_before is not None and entry.hp_after is not None:
            hp_change = f" [HP: {entry.hp_before} → {entry.hp_after}/{entry.max_hp}]"

        match entry.event_type:
            case LogEventType.FIGHT_START | LogEventType.FIGHT_END:
                label = "Fight starts" if entry.event_type == LogEventType.FIGHT_START else "Fight ends"
                units = ", ".join(
                    f"{u.name} HP={u.current_hp}/{u.max_hp}" for u in entry.all_units or []
                )
                return f"  {label}: {units}"

            case LogEventType.ROUND_START:
                return f"  {entry.unit_name} acts"

            case LogEventType.ATTACK:
                return f"    {entry.unit_name} attacks {entry.target_name} (base {entry.value})"

            case LogEventType.HIT:
                crit = " CRIT!" if entry.is_critical else ""
                return f"    → {entry.unit_name} hits {entry.target_name} for {entry.value}{crit}{hp_change}"

            case LogEventType.EXTRA_ATTACK:
                return f"    ↻ {entry.unit_name} strikes again ({entry.description})"

            case LogEventType.ABILITY_CAST:
                return f"    ✦ {entry.unit_name} casts {entry.description} on {entry.target_name}"

            case LogEventType.HEAL:
                return f"    + {entry.unit_name} heals {entry.value}{hp_change}"

            case LogEventType.DEATH_PREVENTED:
                return f"    ✚ {entry.unit_name} cheats death ({entry.value} HP)"

            case LogEventType.DEATH:
                return f"    ✝ {entry.unit_name} dies"

            case LogEventType.REVIVE:
                return f"    ✚ {entry.unit_name} revives ({entry.value} HP)"

            case LogEventType.STATUS_APPLIED:
                return f"    {entry.effect_id} on {entry.unit_name} ({entry.description})"

            case LogEventType.STATUS_TICK:
                return f"    {entry.effect_id} deals {entry.value} to {entry.unit_name}{hp_change}"

            case LogEventType.STATUS_EXPIRED:
                return f"    {entry.effect_id} fades from {entry.unit_name}"

            case LogEventType.PHASE_ENTERED:
                return f"  *** {entry.unit_name} enters phase {entry.phase_index} ***"

            case LogEventType.WINNER_DETERMINED:
                return f"  *** WINNER: {entry.unit_name or 'none (draw)'} ***"

            case _:
                return f"    {entry.event_type.value}: {entry.description or ''}"


class CombatLogger:
    """Logger for tracking combat events.

    Usage:
        logger = CombatLogger(fight_id="arena-1")
        logger.log_fight_start([hero, boss])
        logger.start_round(1, hero)
        # ... resolver and status engine log hits, ticks, deaths ...
        logger.log_winner(hero)

        log = logger.get_log()
        print(log.format_readable())
    """

    def __init__(self, fight_id: str = "fight") -> None:
        """Initialize the logger for a fight."""
        self.fight_id = fight_id
        self._log = CombatLog(fight_id=fight_id)
        self._order_counter = 0
        self.round_number = 0

    def _next_order(self) -> int:
        """Get the next timestamp order value."""
        self._order_counter += 1
        return self._order_counter

    def _append(self, event_type: LogEventType, **kwargs: Any) -> LogEntry:
        entry = LogEntry(
            event_type=event_type,
            round_number=self.round_number,
            timestamp_order=self._next_order(),
            **kwargs,
        )
        self._log.entries.append(entry)
        return entry

    def get_log(self) -> CombatLog:
        """Get the complete combat log."""
        return self._log

    def clear(self) -> None:
        """Clear all log entries."""
        self._log.entries.clear()
        self._order_counter = 0
        self.round_number = 0

    @staticmethod
    def snapshot_unit(unit: "Unit") -> UnitSnapshot:
        """Create a snapshot from a Unit."""
        return UnitSnapshot(
            name=unit.name,
            current_hp=unit.stats.current_hp,
            max_hp=unit.stats.max_hp,
            is_dead=unit.is_dead,
            statuses={effect.id: effect.stacks for effect in unit.status_effects},
        )

    def log_fight_start(self, units: list["Unit"]) -> None:
        """Log the start of a fight with initial snapshots."""
        self._append(LogEventType.FIGHT_START, all_units=[self.snapshot_unit(u) for u in units])

    def log_fight_end(self, units: list["Unit"]) -> None:
        """Log the end of a fight with final snapshots."""
        self._append(LogEventType.FIGHT_END, all_units=[self.snapshot_unit(u) for u in units])

    def start_round(self, round_number: int, acting: "Unit") -> None:
        """Log the start of a unit's turn in the given round."""
        self.round_number = round_number
        self._append(LogEventType.ROUND_START, unit_name=acting.name)

    def log_attack(self, source: "Unit", target: "Unit", base_damage: int) -> None:
        self._append(LogEventType.ATTACK, unit_name=source.name, target_name=target.name, value=base_damage)

    def log_hit(self, hit: "HitRecord") -> None:
        """Log a landed hit with the target's HP before/after."""
        self._append(
            LogEventType.HIT,
            unit_name=hit.source.name,
            target_name=hit.target.name,
            value=hit.damage,
            hp_before=hit.hp_before,
            hp_after=hit.hp_after,
            max_hp=hit.target.stats.max_hp,
            is_critical=hit.is_critical,
            description="extra" if hit.is_extra else None,
        )

    def log_extra_attack(self, source: "Unit", target: "Unit", base_damage: int, reason: str) -> None:
        self._append(
            LogEventType.EXTRA_ATTACK,
            unit_name=source.name,
            target_name=target.name,
            value=base_damage,
            description=reason,
        )

    def log_ability_cast(self, source: "Unit", target: "Unit", ability_name: str) -> None:
        self._append(LogEventType.ABILITY_CAST, unit_name=source.name, target_name=target.name, description=ability_name)

    def log_heal(self, unit: "Unit", amount: int, hp_before: int) -> None:
        self._append(
            LogEventType.HEAL,
            unit_name=unit.name,
            value=amount,
            hp_before=hp_before,
            hp_after=unit.stats.current_hp,
            max_hp=unit.stats.max_hp,
        )

    def log_death_prevented(self, unit: "Unit", revive_hp: int) -> None:
        self._append(LogEventType.DEATH_PREVENTED, unit_name=unit.name, value=revive_hp)

    def log_death(self, unit: "Unit", killer: "Unit | None") -> None:
        self._append(LogEventType.DEATH, unit_name=unit.name, target_name=killer.name if killer else None)

    def log_revive(self, unit: "Unit") -> None:
        self._append(LogEventType.REVIVE, unit_name=unit.name, value=unit.stats.current_hp)

    def log_status_applied(self, unit: "Unit", effect: "StatusEffect") -> None:
        self._append(
            LogEventType.STATUS_APPLIED,
            unit_name=unit.name,
            effect_id=effect.id,
            value=effect.stacks,
            description=f"stacks={effect.stacks}, duration={effect.duration}, damage={effect.base_damage}",
        )

    def log_status_tick(self, unit: "Unit", effect: "StatusEffect", damage: int, hp_before: int) -> None:
        self._append(
            LogEventType.STATUS_TICK,
            unit_name=unit.name,
            effect_id=effect.id,
            value=damage,
            hp_before=hp_before,
            hp_after=unit.stats.current_hp,
            max_hp=unit.stats.max_hp,
        )

    def log_status_expired(self, unit: "Unit", effect: "StatusEffect") -> None:
        self._append(LogEventType.STATUS_EXPIRED, unit_name=unit.name, effect_id=effect.id)

    def log_phase_entered(self, unit: "Unit", phase_index: int, trigger_hp_percent: int) -> None:
        self._append(
            LogEventType.PHASE_ENTERED,
            unit_name=unit.name,
            phase_index=phase_index,
            value=trigger_hp_percent,
        )

    def log_winner(self, winner: "Unit | None") -> None:
        """Log the winner determination (None for a draw)."""
        self._append(LogEventType.WINNER_DETERMINED, unit_name=winner.name if winner else None)
