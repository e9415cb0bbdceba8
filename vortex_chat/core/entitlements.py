from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from vortex_chat.core.settings import Settings

UserType = Literal["guest", "regular"]


@dataclass(frozen=True)
class Entitlements:
    max_messages_per_day: int


def entitlements_for(user_type: UserType, settings: Settings) -> Entitlements:
    if user_type == "guest":
        return Entitlements(max_messages_per_day=settings.guest_max_messages_per_day)
    return Entitlements(max_messages_per_day=settings.regular_max_messages_per_day)
