"""User-facing texts. The core only picks a key, the notification sink renders it."""

from enum import StrEnum

from sessionguard.core.modules.session.models import EndReason


class MessageKey(StrEnum):
    SESSION_DISPLACED = "session_displaced"
    SESSION_ENDED = "session_ended"
    NEW_DEVICE = "new_device"
    RETRY_SIGN_IN = "retry_sign_in"


MESSAGES: dict[str, dict[MessageKey, str]] = {
    "en": {
        MessageKey.SESSION_DISPLACED: "Your session ended because your account was opened on another device.",
        MessageKey.SESSION_ENDED: "Your session has ended. Please sign in again.",
        MessageKey.NEW_DEVICE: "New device detected: {device}. If this wasn't you, change your password.",
        MessageKey.RETRY_SIGN_IN: "We couldn't start your session. Please sign in again.",
    },
    "ar": {
        MessageKey.SESSION_DISPLACED: "تم إنهاء جلستك لأنه تم فتح حسابك على جهاز آخر.",
        MessageKey.SESSION_ENDED: "انتهت جلستك. يرجى تسجيل الدخول مرة أخرى.",
        MessageKey.NEW_DEVICE: "تم اكتشاف جهاز جديد: {device}. إذا لم تكن أنت، قم بتغيير كلمة المرور.",
        MessageKey.RETRY_SIGN_IN: "تعذر بدء جلستك. يرجى تسجيل الدخول مرة أخرى.",
    },
}

DEFAULT_LOCALE = "en"


def key_for_reason(reason: EndReason | None) -> MessageKey:
    if reason == EndReason.NEW_LOGIN:
        return MessageKey.SESSION_DISPLACED
    return MessageKey.SESSION_ENDED


def render(key: MessageKey, locale: str | None = None, **params: str) -> str:
    """Look up a message, falling back from "ar-EG" to "ar" to English."""
    language = (locale or DEFAULT_LOCALE).split("-")[0].lower()
    table = MESSAGES.get(language, MESSAGES[DEFAULT_LOCALE])
    return table[key].format(**params)


def message_for(reason: EndReason | None, locale: str | None = None) -> str:
    return render(key_for_reason(reason), locale)
