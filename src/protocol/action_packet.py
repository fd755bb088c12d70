"""
PacketParser — Action Packet Decoder (0x028)

Layout after the 4-byte packet header:
  Bytes 4-7: actor id (u32le, byte-aligned)
  Byte 8+:   bit-packed action data, LSB-first

Bit fields:
  target_count 10, category 4, param 16, (recast) 16
  per target:  target_id 32, action_count 4
  per action:  reaction 5, animation 12, effect_flag 4, stagger 7,
               knockback 3, magnitude 17, message 10, (unknown) 31
  effect_flag != 0: add_anim 10, spike_flag 4, add_magnitude 17, add_msg 10
  spike_flag != 0:  spike_anim 10, spike_kind 4, spike_magnitude 14, spike_msg 10

Decoding either yields a complete DecodedAction or a DecodeFailure.
Nothing from a rejected packet is ever handed to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator

from src.protocol.bitreader import BitStreamReader

MIN_PACKET_SIZE = 10
ACTOR_ID_OFFSET = 4
BIT_DATA_OFFSET = 8

MAX_TARGETS = 16
MAX_ACTIONS_PER_TARGET = 8


class ActionCategory(IntEnum):
    """Every value the 4-bit category field can carry."""
    NONE = 0
    MELEE = 1
    RANGED = 2
    WEAPON_SKILL = 3
    MAGIC = 4
    ITEM = 5
    JOB_ABILITY = 6
    WS_READYING = 7
    CASTING = 8
    ITEM_START = 9
    JOB_ABILITY_START = 10
    MONSTER_ABILITY = 11
    RANGED_START = 12
    PET_ABILITY = 13
    DANCE = 14
    RUNE = 15

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS: dict[ActionCategory, str] = {
    ActionCategory.NONE: "none",
    ActionCategory.MELEE: "melee",
    ActionCategory.RANGED: "ranged",
    ActionCategory.WEAPON_SKILL: "weapon_skill",
    ActionCategory.MAGIC: "magic",
    ActionCategory.ITEM: "item",
    ActionCategory.JOB_ABILITY: "job_ability",
    ActionCategory.WS_READYING: "ws_readying",
    ActionCategory.CASTING: "casting",
    ActionCategory.ITEM_START: "item_start",
    ActionCategory.JOB_ABILITY_START: "job_ability_start",
    ActionCategory.MONSTER_ABILITY: "monster_ability",
    ActionCategory.RANGED_START: "ranged_start",
    ActionCategory.PET_ABILITY: "pet_ability",
    ActionCategory.DANCE: "dance",
    ActionCategory.RUNE: "rune",
}

# Start-of-action announcements. They precede the completion packet for the
# same action, so recording them would double count.
ANNOUNCEMENT_CATEGORIES = frozenset({
    ActionCategory.WS_READYING,
    ActionCategory.CASTING,
    ActionCategory.ITEM_START,
    ActionCategory.RANGED_START,
})


# ---- Decoded structures ----

@dataclass
class SpikeEffect:
    """Tertiary effect (spikes, counters) nested under an additional effect."""
    animation_id: int
    effect_kind: int
    magnitude: int
    message_id: int


@dataclass
class AdditionalEffect:
    """Secondary proc on an action: enspell damage, defense down, etc."""
    animation_id: int
    spike_flag: int
    magnitude: int
    message_id: int
    spike: SpikeEffect | None = None


@dataclass
class ActionEffect:
    """One action result against one target."""
    reaction: int
    animation_id: int
    effect_flag: int
    stagger: int
    knockback: int
    magnitude: int  # damage / healing value
    message_id: int
    add_effect: AdditionalEffect | None = None


@dataclass
class Target:
    target_id: int
    actions: list[ActionEffect] = field(default_factory=list)


@dataclass
class DecodedAction:
    """A fully decoded action packet."""
    actor_id: int
    category: int
    param: int
    targets: list[Target] = field(default_factory=list)

    @property
    def action_category(self) -> ActionCategory:
        return ActionCategory(self.category)

    @property
    def is_announcement(self) -> bool:
        return self.category in ANNOUNCEMENT_CATEGORIES

    def iter_actions(self) -> Iterator[tuple[Target, ActionEffect]]:
        """Yield (target, action) pairs in packet order."""
        for target in self.targets:
            for action in target.actions:
                yield target, action


@dataclass(frozen=True)
class DecodeFailure:
    """A rejected packet. Falsy, so `if not result` reads naturally."""
    reason: str  # "too_short", "target_count", "action_count"
    detail: str = ""

    def __bool__(self) -> bool:
        return False


# ---- Decoder ----

def _read_spike(reader: BitStreamReader) -> SpikeEffect:
    return SpikeEffect(
        animation_id=reader.read(10),
        effect_kind=reader.read(4),
        magnitude=reader.read(14),
        message_id=reader.read(10),
    )


def _read_additional_effect(reader: BitStreamReader) -> AdditionalEffect:
    add = AdditionalEffect(
        animation_id=reader.read(10),
        spike_flag=reader.read(4),
        magnitude=reader.read(17),
        message_id=reader.read(10),
    )
    if add.spike_flag != 0:
        add.spike = _read_spike(reader)
    return add


def _read_action(reader: BitStreamReader) -> ActionEffect:
    action = ActionEffect(
        reaction=reader.read(5),
        animation_id=reader.read(12),
        effect_flag=reader.read(4),
        stagger=reader.read(7),
        knockback=reader.read(3),
        magnitude=reader.read(17),
        message_id=reader.read(10),
    )
    reader.skip(31)  # unknown
    if action.effect_flag != 0:
        action.add_effect = _read_additional_effect(reader)
    return action


def decode_action_packet(data: bytes) -> DecodedAction | DecodeFailure:
    """Decode an action packet buffer.

    Returns a DecodeFailure when the buffer is too short or a target/action
    count is out of bounds. Truncated bit data reads as zeros, so a short
    tail still produces a structurally complete result.
    """
    if len(data) < MIN_PACKET_SIZE:
        return DecodeFailure("too_short", f"{len(data)} bytes < {MIN_PACKET_SIZE}")

    actor_id = int.from_bytes(data[ACTOR_ID_OFFSET:ACTOR_ID_OFFSET + 4], "little")
    reader = BitStreamReader(data, BIT_DATA_OFFSET)

    target_count = reader.read(10)
    category = reader.read(4)
    param = reader.read(16)
    reader.skip(16)  # recast

    if target_count == 0 or target_count > MAX_TARGETS:
        return DecodeFailure("target_count", f"target_count={target_count}")

    targets: list[Target] = []
    for _ in range(target_count):
        target = Target(target_id=reader.read(32))
        action_count = reader.read(4)
        if action_count > MAX_ACTIONS_PER_TARGET:
            return DecodeFailure(
                "action_count",
                f"target 0x{target.target_id:08x} action_count={action_count}",
            )
        for _ in range(action_count):
            target.actions.append(_read_action(reader))
        targets.append(target)

    return DecodedAction(
        actor_id=actor_id,
        category=category,
        param=param,
        targets=targets,
    )
