"""Management model versions.

The management model version identifies the server generation, e.g.
2.0.0 = WildFly 8, 3.0.0 = WildFly 9, 4.0.0 = WildFly 10 (ActiveMQ messaging).
"""
from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class ServerVersion:
    major: int
    minor: int = 0
    micro: int = 0

    @classmethod
    def parse(cls, text: str) -> "ServerVersion":
        parts = [int(p) for p in text.strip().split(".")]
        if not 1 <= len(parts) <= 3:
            raise ValueError(f"Invalid server version: {text!r}")
        return cls(*parts)

    def greater_than_or_equal_to(self, other: "ServerVersion") -> bool:
        return self >= other

    def less_than(self, other: "ServerVersion") -> bool:
        return self < other

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.micro}"


VERSION_1_7_0 = ServerVersion(1, 7, 0)  # EAP 6.4
VERSION_2_0_0 = ServerVersion(2, 0, 0)  # WildFly 8
VERSION_3_0_0 = ServerVersion(3, 0, 0)  # WildFly 9
VERSION_4_0_0 = ServerVersion(4, 0, 0)  # WildFly 10
