"""
Command Models
==============

Commands travelling from HTTP clients and bus producers to the
command publisher.

Wire Format (multi-part):
    [target, data]

Simple commands carry a fixed header around the client body:
    {
        "data": <client JSON>,
        "header": {"id": 171, "tid": 0, "timestamp": 0,
                   "robot_id": "Romo", "version": "0.1"}
    }
"""

from typing import Any

from pydantic import BaseModel, Field

from zmq_rest_bridge.config import EnvelopeConfig


class CommandHeader(BaseModel):
    """Header of a simple command envelope."""

    id: int = Field(default=171, description="Message id")
    tid: int = Field(default=0, description="Transaction id")
    timestamp: int = Field(default=0, description="Header timestamp")
    robot_id: str = Field(default="Romo", description="Originating robot id")
    version: str = Field(default="0.1", description="Envelope protocol version")

    @classmethod
    def from_config(cls, config: EnvelopeConfig) -> "CommandHeader":
        return cls.model_validate(config.model_dump())


class CommandEnvelope(BaseModel):
    """Client body wrapped with a CommandHeader."""

    data: Any = Field(..., description="Client-supplied JSON body")
    header: CommandHeader = Field(default_factory=CommandHeader)
