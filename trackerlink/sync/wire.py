"""Wire models for packets received from the hosting tracker."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

log = logging.getLogger(__name__)

SERVER_HEAD_TYPE = "server"
STATE_DATA_TYPE = "state"


class RawCondition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    color: str = ""
    turns: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_entity(cls, value: Any) -> Any:
        # Newer hosts nest the display fields under "entity".
        if isinstance(value, dict) and isinstance(value.get("entity"), dict):
            return value["entity"]
        return value

    @field_validator("name", "color", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class RawRow(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str | None = None
    initiative: int | None = None
    is_active: bool = Field(default=False, alias="isActive")
    hp_wound_level: int | None = Field(default=None, alias="hpWoundLevel")
    hp_current: int | None = Field(default=None, alias="hpCurrent")
    hp_max: int | None = Field(default=None, alias="hpMax")
    conditions: list[RawCondition] = Field(default_factory=list)

    @field_validator("conditions", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("is_active", mode="before")
    @classmethod
    def _none_to_false(cls, value: Any) -> Any:
        return False if value is None else value


class RawSessionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    round: int = 0
    rows: list[RawRow]


class PacketHead(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    version: str | None = None


class PacketData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    payload: Any = None


class PeerPacket(BaseModel):
    model_config = ConfigDict(extra="ignore")

    head: PacketHead | None = None
    data: PacketData | None = None


def decode_packet(packet: Any) -> PeerPacket | None:
    """Decode a raw packet into the envelope model, or None when it is not one."""
    if isinstance(packet, (bytes, bytearray)):
        packet = packet.decode("utf-8", errors="replace")
    if isinstance(packet, str):
        try:
            packet = json.loads(packet)
        except json.JSONDecodeError:
            log.warning("Dropping non-JSON packet from peer")
            return None
    if not isinstance(packet, dict):
        log.warning("Dropping packet with unexpected type %s", type(packet).__name__)
        return None
    try:
        return PeerPacket.model_validate(packet)
    except ValidationError as exc:
        log.warning("Dropping packet with malformed envelope: %s", exc)
        return None


def extract_state_payload(packet: Any) -> Any | None:
    """Return the state payload of an accepted server packet.

    Only packets with ``head.type == "server"``, ``data.type == "state"`` and a
    present payload are accepted; everything else is logged and dropped.
    """
    envelope = decode_packet(packet)
    if envelope is None:
        return None
    if (
        envelope.head is None
        or envelope.head.type != SERVER_HEAD_TYPE
        or envelope.data is None
        or envelope.data.type != STATE_DATA_TYPE
        or envelope.data.payload is None
    ):
        log.warning("Received unexpected data format from peer: %r", packet)
        return None
    return envelope.data.payload
