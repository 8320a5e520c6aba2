"""Static substitutes served when generation is unusable."""
from __future__ import annotations

from .models import OptionsPayload

SERVICE_UNAVAILABLE_ERROR = "model_overloaded"
SERVICE_UNAVAILABLE_MESSAGE = "しばらくしてから再試行してください"

_FALLBACK_OPTIONS = OptionsPayload(
    heroes=("未来から来た配達員", "記憶を失った猫探偵", "銀髪の錬金術師"),
    stages=("空に浮かぶ都市", "夜だけ光る図書館", "巨大パンケーキの島"),
    rules=("感情で魔法が変わる", "時間が逆に流れる", "音を立てると物が動く"),
    rivals=("冷徹な剣士", "お菓子を盗む忍者リス", "異世界の自分"),
    bosses=("時を止める王", "巨大な樹木の怪物", "カレーを愛するドラゴン"),
)


def fallback_options_payload() -> OptionsPayload:
    """Return the fixed options payload; never cached, never carries error text."""

    return _FALLBACK_OPTIONS


def service_unavailable_body() -> dict:
    return {"error": SERVICE_UNAVAILABLE_ERROR, "message": SERVICE_UNAVAILABLE_MESSAGE}
