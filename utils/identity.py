"""Address helpers shared by the engine and the transports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AddressScheme:
    """Canonical ``local@server`` addressing for users and groups.

    Transports may suffix a device marker to the local part
    (``15551234567:3@server``); :meth:`normalize` removes it so that the same
    account is recognised whichever device sent the message.
    """

    user_server: str = "s.whatsapp.net"
    group_server: str = "g.us"

    def normalize(self, address: Optional[str]) -> str:
        if not address:
            return ""
        local, _, server = str(address).strip().partition("@")
        local = local.split(":", 1)[0]
        return f"{local}@{server or self.user_server}"

    def user(self, local: object) -> str:
        return self.normalize(str(local))

    def group(self, local: object) -> str:
        return f"{local}@{self.group_server}"

    @staticmethod
    def local_part(address: str) -> str:
        return address.partition("@")[0].split(":", 1)[0]
