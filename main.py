"""Main entry point for the payments chat bot."""

import sys
import os

# For Vercel deployment, just export the FastAPI app
if os.getenv("VERCEL"):
    from api_server import app
    # Vercel will use this app directly
    __all__ = ["app"]
else:
    # For local development, use the API / polling runner
    import argparse
    import asyncio
    from paybot.utils.config import settings
    from paybot.utils.logger import get_logger
    logger = get_logger("main")


def run_api():
    """Run the webhook API server."""
    try:
        import uvicorn

        logger.info(f"Starting {settings.app_name} API server")
        print(f"🚀 Starting {settings.app_name} API Server")
        print(f"📍 Running on: http://{settings.api_host}:{settings.api_port}")
        print(f"🔗 Telegram webhook: {settings.webhook_url or 'not configured'}")
        print(f"🔄 Debug mode: {settings.debug}")
        print()

        uvicorn.run(
            "api_server:app",  # Use import string for proper reload support
            host=settings.api_host,
            port=settings.api_port,
            reload=settings.api_reload,
            log_level=settings.log_level.lower()
        )

    except ImportError as e:
        logger.error(f"Failed to import API modules: {e}")
        print("Error: Failed to start API server. Make sure all dependencies are installed.")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error running API server: {e}")
        print(f"Error: {e}")
        sys.exit(1)


def run_polling():
    """Run the bot with Telegram long polling."""
    from paybot.agents.bot_runner import BotRunner
    from paybot.utils.service_validator import log_service_status

    log_service_status(settings)
    print(f"🤖 Starting {settings.app_name} in long-polling mode")
    print("Press Ctrl+C to stop.")
    print()
    asyncio.run(BotRunner().run())


def check_environment() -> bool:
    """Check if environment is properly configured."""
    from paybot.utils.service_validator import validate_all_services

    results = validate_all_services(settings)
    if not settings.telegram_enabled:
        print("⚠️  Warning: Telegram bot token not configured!")
        print("Please set TELEGRAM_BOT_TOKEN in your .env file.")
        print()
    else:
        print("✅ Telegram bot token configured")

    for service_name, result in results.items():
        if service_name == "overall_valid":
            continue
        for issue in result.get("issues", []):
            print(f"❌ {service_name}: {issue}")
        for warning in result.get("warnings", []):
            print(f"⚠️  {service_name}: {warning}")

    return results["overall_valid"]


def main():
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description=f"{settings.app_name} - Telegram bot for the Copperx payments API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py              # Run webhook API if WEBHOOK_URL is set, else long polling
  python main.py --api         # Run the webhook API server
  python main.py --polling     # Run the bot with long polling
  python main.py --check       # Check environment configuration
        """
    )

    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--api",
        action="store_true",
        help="Run the FastAPI server (Telegram webhook + notification events)"
    )
    group.add_argument(
        "--polling",
        action="store_true",
        help="Run the bot with Telegram long polling"
    )
    group.add_argument(
        "--check",
        action="store_true",
        help="Check environment configuration"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"{settings.app_name} v{settings.app_version}"
    )

    args = parser.parse_args()

    # Print header
    print("=" * 60)
    print(f"  {settings.app_name} v{settings.app_version}")
    print("  Telegram payments bot")
    print("=" * 60)
    print()

    if args.check:
        ok = check_environment()
        print()
        print("✅ Environment configuration check passed!" if ok else "❌ Environment configuration has issues")
        print(f"📍 API will run on: http://{settings.api_host}:{settings.api_port}")
        print(f"🌐 Payments API: {settings.api_base_url}")
        sys.exit(0 if ok else 1)

    if not check_environment():
        sys.exit(1)

    if args.api:
        run_api()
    elif args.polling:
        run_polling()
    elif settings.webhook_url:
        run_api()
    else:
        run_polling()


if __name__ == "__main__":
    # Only run the runner if not on Vercel
    if not os.getenv("VERCEL"):
        try:
            main()
        except KeyboardInterrupt:
            print("\n👋 Application terminated by user")
            sys.exit(0)
        except Exception as e:
            logger.error(f"Fatal error: {e}")
            print(f"\n💥 Fatal error: {e}")
            sys.exit(1)
