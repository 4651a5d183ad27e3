"""Service validation utilities to ensure all services are properly configured."""

from typing import Any, Dict, Optional
from urllib.parse import urlparse
from paybot.utils.logger import get_logger
from paybot.utils.config import Settings, settings as default_settings

logger = get_logger("service_validator")


def validate_payments_api_config(settings: Settings) -> Dict[str, Any]:
    """Validate the payments API configuration."""
    issues = []
    warnings = []

    parsed = urlparse(settings.api_base_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        issues.append(f"API_BASE_URL is not a valid http(s) URL: '{settings.api_base_url}'")
    elif parsed.scheme == "http":
        warnings.append("API_BASE_URL uses plain http; bearer tokens will travel unencrypted")

    if settings.api_timeout_seconds <= 0:
        issues.append("API_TIMEOUT_SECONDS must be positive")
    elif settings.api_timeout_seconds > 30:
        warnings.append(f"API_TIMEOUT_SECONDS is {settings.api_timeout_seconds}s; users will wait that long on outages")

    return {
        "valid": len(issues) == 0,
        "issues": issues,
        "warnings": warnings
    }


def validate_telegram_config(settings: Settings) -> Dict[str, Any]:
    """Validate Telegram bot configuration."""
    issues = []
    warnings = []

    token = settings.telegram_bot_token.strip()
    if not token:
        issues.append("TELEGRAM_BOT_TOKEN is not configured - the bot cannot send or receive messages")
    elif ":" not in token:
        warnings.append("TELEGRAM_BOT_TOKEN does not look like a BotFather token (<id>:<secret>)")

    if settings.webhook_url and not settings.webhook_url.startswith("https://"):
        issues.append("WEBHOOK_URL must be an https URL for Telegram webhooks")
    if settings.webhook_url and not settings.telegram_webhook_secret:
        warnings.append("TELEGRAM_WEBHOOK_SECRET is not set - webhook requests will not be authenticated")
    if not settings.webhook_url and not settings.telegram_use_polling:
        warnings.append("Neither WEBHOOK_URL nor TELEGRAM_USE_POLLING is set - no updates will arrive")

    return {
        "valid": len(issues) == 0,
        "issues": issues,
        "warnings": warnings,
        "mode": "webhook" if settings.webhook_url else ("polling" if settings.telegram_use_polling else "none"),
    }


def validate_notifications_config(settings: Settings) -> Dict[str, Any]:
    """Validate deposit notification configuration."""
    issues = []
    warnings = []

    if not settings.notifications_secret:
        warnings.append("NOTIFICATIONS_SECRET is not configured - deposit events endpoint is disabled")
    if not settings.pusher_key:
        warnings.append("PUSHER_KEY is not configured - the push relay cannot subscribe to channels")

    return {
        "valid": len(issues) == 0,
        "issues": issues,
        "warnings": warnings,
        "enabled": bool(settings.notifications_secret),
    }


def validate_conversation_config(settings: Settings) -> Dict[str, Any]:
    """Validate conversation behaviour settings."""
    issues = []
    warnings = []

    if settings.min_wallet_address_length < 1:
        issues.append("MIN_WALLET_ADDRESS_LENGTH must be at least 1")
    if settings.ambiguous_response_policy.value == "assume_success":
        warnings.append("AMBIGUOUS_RESPONSE_POLICY=assume_success - unrecognized OTP responses count as sent")

    return {
        "valid": len(issues) == 0,
        "issues": issues,
        "warnings": warnings
    }


def validate_all_services(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Validate all service configurations."""
    settings = settings or default_settings
    results: Dict[str, Any] = {
        "payments_api": validate_payments_api_config(settings),
        "telegram": validate_telegram_config(settings),
        "notifications": validate_notifications_config(settings),
        "conversation": validate_conversation_config(settings),
        "overall_valid": True
    }

    # Check if any critical services have issues
    for name in ("payments_api", "telegram", "conversation"):
        if not results[name]["valid"]:
            results["overall_valid"] = False

    # Log warnings
    for service_name, result in results.items():
        if service_name == "overall_valid":
            continue
        for warning in result.get("warnings", []):
            logger.warning(f"⚠️  {service_name.upper()}: {warning}")
        for issue in result.get("issues", []):
            logger.error(f"❌ {service_name.upper()}: {issue}")

    return results


def log_service_status(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Log the status of all services for debugging."""
    settings = settings or default_settings
    logger.info("=" * 60)
    logger.info("Service Configuration Status")
    logger.info("=" * 60)

    results = validate_all_services(settings)

    logger.info(f"Payments API: {'✅ Valid' if results['payments_api']['valid'] else '❌ Invalid'} ({settings.api_base_url})")
    logger.info(f"Telegram: {'✅ Configured' if results['telegram']['valid'] else '❌ Invalid'} "
                f"(mode: {results['telegram']['mode']})")
    logger.info(f"Deposit notifications: {'✅ Enabled' if results['notifications']['enabled'] else '⚠️  Disabled'}")
    logger.info(f"Policies: ambiguous={settings.ambiguous_response_policy.value}, "
                f"out_of_state={settings.out_of_state_action_policy.value}")
    logger.info(f"Overall: {'✅ All critical services valid' if results['overall_valid'] else '❌ Some services have issues'}")
    logger.info("=" * 60)
    return results
