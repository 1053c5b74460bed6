"""
Packet types for the UDP echo traffic
"""

from dataclasses import dataclass


@dataclass
class EchoPacket:
    """Echo request, or the reply carrying the same uid back to the client"""
    uid: int
    size_bytes: int
    created_at: float
    is_reply: bool = False
    hop_count: int = 0

    def reply(self) -> "EchoPacket":
        return EchoPacket(self.uid, self.size_bytes, self.created_at, True, 0)
