"""
PacketParser — Packet Type Registry

Registry of the incoming packets the collector understands, plus the
byte-aligned field decoder used for their fixed header fields.

Every incoming chunk starts with a 4-byte header:
  u16le  bits 0-8  = packet id
         bits 9-15 = packet size in 4-byte words
  u16le  sequence number

Only two packets matter here:
  0x028 ACTION         — bit-packed, see action_packet.py
  0x00E ENTITY_UPDATE  — NPC/mob presence and position
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

HEADER_SIZE = 4

ENTITY_UPDATE_ID = 0x00E
ACTION_ID = 0x028

# ENTITY_UPDATE update_mask bit for the position block
UPDATE_POSITION = 0x01


@dataclass
class FieldDef:
    """A byte-aligned field within a packet."""
    name: str
    offset: int
    size: int
    type: str  # "u8", "u16le", "u32le", "f32"
    description: str = ""


@dataclass
class PacketDef:
    """Definition of a known packet type."""
    packet_id: int
    name: str
    description: str = ""
    fields: list[FieldDef] = field(default_factory=list)


KNOWN_PACKETS: dict[int, PacketDef] = {

    ENTITY_UPDATE_ID: PacketDef(
        packet_id=ENTITY_UPDATE_ID,
        name="ENTITY_UPDATE",
        description="NPC / mob presence: id, index, update mask, position",
        fields=[
            FieldDef("entity_id", 4, 4, "u32le", "Entity ID"),
            FieldDef("index", 8, 2, "u16le", "Entity index"),
            FieldDef("update_mask", 10, 1, "u8", "Which blocks this update carries"),
            FieldDef("x", 12, 4, "f32", "X coordinate"),
            FieldDef("y", 16, 4, "f32", "Y coordinate (vertical)"),
            FieldDef("z", 20, 4, "f32", "Z coordinate"),
        ],
    ),

    ACTION_ID: PacketDef(
        packet_id=ACTION_ID,
        name="ACTION",
        description="Action completion / announcement (bit-packed body)",
        fields=[
            FieldDef("actor_id", 4, 4, "u32le", "Acting entity ID"),
        ],
    ),
}


def decode_field(data: bytes, field_def: FieldDef) -> int | float:
    """Decode a single field from packet data. Unknown types raise ValueError."""
    raw = data[field_def.offset:field_def.offset + field_def.size]
    match field_def.type:
        case "u8":
            return raw[0]
        case "u16le" | "u32le":
            return int.from_bytes(raw, "little", signed=False)
        case "f32":
            return struct.unpack("<f", raw)[0]
        case _:
            raise ValueError(f"unsupported field type: {field_def.type!r}")


def decode_packet(packet_id: int, data: bytes) -> dict | None:
    """Decode the registered byte-aligned fields of a packet.

    Fields that do not fit in `data` are left out of the result.
    """
    pdef = KNOWN_PACKETS.get(packet_id)
    if pdef is None or len(data) < HEADER_SIZE:
        return None

    result = {
        "packet_id": packet_id,
        "packet_id_hex": f"0x{packet_id:03x}",
        "name": pdef.name,
        "size": len(data),
    }
    for f in pdef.fields:
        if f.offset + f.size <= len(data):
            result[f.name] = decode_field(data, f)
    return result


# ---- Entity presence ----

@dataclass
class EntityUpdate:
    """The parts of an ENTITY_UPDATE the collector needs."""
    entity_id: int
    index: int
    update_mask: int
    position: tuple[float, float, float] | None = None


def decode_entity_update(data: bytes) -> EntityUpdate | None:
    """Pull id, index and (when flagged) position out of an ENTITY_UPDATE.

    Returns None if the buffer does not even hold the id and index.
    """
    decoded = decode_packet(ENTITY_UPDATE_ID, data)
    if not decoded or "entity_id" not in decoded or "index" not in decoded:
        return None

    mask = decoded.get("update_mask", 0)
    position = None
    if mask & UPDATE_POSITION and all(k in decoded for k in ("x", "y", "z")):
        position = (decoded["x"], decoded["y"], decoded["z"])

    return EntityUpdate(
        entity_id=decoded["entity_id"],
        index=decoded["index"],
        update_mask=mask,
        position=position,
    )
