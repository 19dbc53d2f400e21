# src/pricewatch/shared/language.py
"""
Language Management - Multi-language Support

This module provides the message catalog for the two supported locales
(English and Arabic), locale resolution with fallback to the default
locale, and localized names for metals and countries.

Files that USE this module:
- pricewatch.adapters.formatting.formatter (uses translate and display names)
- pricewatch.adapters.telegram.handlers (uses translate for bot replies)
- pricewatch.config.settings (validates DEFAULT_LANGUAGE)

Files that this module USES:
- None (pure lookup tables)
"""
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Language constants
LANG_ENGLISH = "en"
LANG_ARABIC = "ar"
DEFAULT_LANGUAGE = LANG_ENGLISH
SUPPORTED_LANGUAGES = (LANG_ENGLISH, LANG_ARABIC)


METAL_NAMES: Dict[str, Dict[str, str]] = {
    LANG_ENGLISH: {"gold": "Gold", "silver": "Silver"},
    LANG_ARABIC: {"gold": "الذهب", "silver": "الفضة"},
}

COUNTRY_NAMES: Dict[str, Dict[str, str]] = {
    LANG_ENGLISH: {
        "egypt": "Egypt",
        "usa": "USA",
        "germany": "Germany",
        "saudi-arabia": "Saudi Arabia",
        "uae": "UAE",
    },
    LANG_ARABIC: {
        "egypt": "مصر",
        "usa": "الولايات المتحدة",
        "germany": "ألمانيا",
        "saudi-arabia": "السعودية",
        "uae": "الإمارات",
    },
}


# Translation dictionaries
TRANSLATIONS: Dict[str, Dict[str, str]] = {
    LANG_ENGLISH: {
        # Notifications
        "commodity_alert_title": "{metal} Price Alert - {country}",
        "commodity_alert_body": "{metal} price in {country} is now {value} {unit} ({change}%)",
        "fx_alert_title": "Exchange Rate Alert",
        "fx_alert_body": "{pair} rate is now {value} {unit} ({change}%)",
        "digest_title": "Daily price digest",
        "digest_commodity_line": "{metal} ({country}): {value} {unit} ({change}%)",
        "digest_fx_line": "{pair}: {value} {unit} ({change}%)",
        "digest_empty": "No prices collected yet",
        "history_button": "History",
        "karat_header": "Per karat (buy / sell):",
        "karat_line": "{karat}K: {buy} / {sell} {unit}",
        # Bot replies
        "registered": "You are subscribed. Add alerts with /alert <target> <above|below|any> <threshold>, e.g. /alert gold:egypt above 3300 or /alert USD/EGP any 0",
        "not_registered": "You are not subscribed yet. Send /start first.",
        "usage_alert": "Usage: /alert <target> <above|below|any> <threshold>\nTargets look like gold:egypt or USD/EGP",
        "invalid_target": "Unknown target: {target}",
        "invalid_threshold": "Invalid threshold: {threshold}",
        "alert_added": "Alert added: {target} {direction} {threshold}",
        "alerts_header": "Your alerts:",
        "no_alerts": "You have no alerts.",
        "alerts_cleared": "All alerts removed.",
        "usage_lang": "Usage: /lang <en|ar>",
        "language_set": "Language set to English.",
        "usage_interval": "Usage: /interval <minutes>",
        "interval_set": "Minimum time between notifications: {minutes} min",
        "usage_notify": "Usage: /notify <on|off>",
        "notify_on": "Notifications enabled.",
        "notify_off": "Notifications paused.",
        "prices_header": "Latest prices:",
        "history_header": "Recent prices for {target}:",
        "no_history": "No history for {target} yet.",
        "rate_limited": "Rate limit exceeded. Please try again later.",
        "admin_only": "This command is only available to the admin.",
        "cache_cleared": "Price cache cleared ({scope}).",
        "usage_refresh": "Usage: /refresh [commodity|fx]",
        "storage_error": "Something went wrong, please try again later.",
    },
    LANG_ARABIC: {
        "commodity_alert_title": "تنبيه سعر {metal} - {country}",
        "commodity_alert_body": "سعر {metal} في {country} الآن {value} {unit} ({change}%)",
        "fx_alert_title": "تنبيه سعر الصرف",
        "fx_alert_body": "سعر {pair} الآن {value} {unit} ({change}%)",
        "digest_title": "ملخص الأسعار اليومي",
        "digest_commodity_line": "{metal} ({country}): {value} {unit} ({change}%)",
        "digest_fx_line": "{pair}: {value} {unit} ({change}%)",
        "digest_empty": "لا توجد أسعار بعد",
        "history_button": "السجل",
        "karat_header": "حسب العيار (شراء / بيع):",
        "karat_line": "عيار {karat}: {buy} / {sell} {unit}",
        "registered": "تم اشتراكك. أضف تنبيهًا باستخدام /alert <الهدف> <above|below|any> <الحد>، مثال: /alert gold:egypt above 3300",
        "not_registered": "أنت غير مشترك بعد. أرسل /start أولاً.",
        "usage_alert": "الاستخدام: /alert <الهدف> <above|below|any> <الحد>\nالأهداف مثل gold:egypt أو USD/EGP",
        "invalid_target": "هدف غير معروف: {target}",
        "invalid_threshold": "حد غير صالح: {threshold}",
        "alert_added": "تمت إضافة التنبيه: {target} {direction} {threshold}",
        "alerts_header": "تنبيهاتك:",
        "no_alerts": "لا توجد لديك تنبيهات.",
        "alerts_cleared": "تم حذف جميع التنبيهات.",
        "usage_lang": "الاستخدام: /lang <en|ar>",
        "language_set": "تم تغيير اللغة إلى العربية.",
        "usage_interval": "الاستخدام: /interval <دقائق>",
        "interval_set": "أقل مدة بين الإشعارات: {minutes} دقيقة",
        "usage_notify": "الاستخدام: /notify <on|off>",
        "notify_on": "تم تفعيل الإشعارات.",
        "notify_off": "تم إيقاف الإشعارات مؤقتًا.",
        "prices_header": "أحدث الأسعار:",
        "history_header": "الأسعار الأخيرة لـ {target}:",
        "no_history": "لا يوجد سجل لـ {target} بعد.",
        "rate_limited": "تم تجاوز الحد المسموح. حاول لاحقًا.",
        "admin_only": "هذا الأمر متاح للمشرف فقط.",
        "cache_cleared": "تم مسح ذاكرة الأسعار ({scope}).",
        "usage_refresh": "الاستخدام: /refresh [commodity|fx]",
        "storage_error": "حدث خطأ، يرجى المحاولة لاحقًا.",
    },
}


def resolve_language(lang: Optional[str]) -> str:
    """
    Map a requested locale onto a supported one.

    Accepts region-qualified codes ("ar-EG"); anything unsupported or missing
    falls back to the default locale.
    """
    if lang:
        primary = lang.strip().lower().replace("_", "-").split("-")[0]
        if primary in SUPPORTED_LANGUAGES:
            return primary
    return DEFAULT_LANGUAGE


def translate(key: str, lang: Optional[str] = None, **kwargs: Any) -> str:
    """
    Translate a message key with optional parameters.

    Args:
        key: Translation key
        lang: Requested locale (resolved with fallback to English)
        **kwargs: Parameters to format into translation

    Returns:
        Translated and formatted string, or the key if no translation exists
    """
    current_lang = resolve_language(lang)
    template = TRANSLATIONS[current_lang].get(key) or TRANSLATIONS[DEFAULT_LANGUAGE].get(key, key)
    try:
        return template.format(**kwargs)
    except KeyError as e:
        logger.warning("Missing parameter in translation '%s': %s", key, e)
        return template


def metal_name(metal: str, lang: Optional[str] = None) -> str:
    return METAL_NAMES[resolve_language(lang)].get(metal, metal.title())


def country_name(country: str, lang: Optional[str] = None) -> str:
    return COUNTRY_NAMES[resolve_language(lang)].get(country, country.replace("-", " ").title())
