"""Main application entry point."""
import asyncio
import logging
from typing import Optional
from warnings import filterwarnings

from telegram.warnings import PTBUserWarning

# Suppress the warning about CallbackQueryHandler and per_message
filterwarnings(action="ignore", message=r".*CallbackQueryHandler", category=PTBUserWarning)

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)

from flashgame.config import settings
from flashgame.models.base import init_db, SessionLocal
from flashgame.monitoring import start_monitoring
from flashgame.services.game_service import GameService
from flashgame.services.vocabulary_service import VocabularyService
from flashgame.bot import (
    GAME_SERVICE_KEY,
    handle_start,
    handle_callback,
    handle_game_message,
    handle_game_callback,
    handle_add_words,
    handle_admin_input,
    handle_error,
    MAIN_MENU,
    CHOOSING,
    PLAYING,
    ADDING_WORDS,
    ADMIN_INPUT,
)

CLEANUP_INTERVAL = 300  # seconds between sweeps of idle games


class FlashBot:
    """Main application class."""

    def __init__(self):
        """Initialize the application."""
        self.application: Optional[Application] = None
        self.game_service = GameService()
        self.cleanup_task: Optional[asyncio.Task] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def build_handler(self) -> ConversationHandler:
        """Conversation handler for both messages and callbacks."""
        return ConversationHandler(
            entry_points=[CommandHandler("start", handle_start)],
            states={
                MAIN_MENU: [CallbackQueryHandler(handle_callback)],
                CHOOSING: [CallbackQueryHandler(handle_callback)],
                PLAYING: [
                    MessageHandler(filters.TEXT & ~filters.COMMAND, handle_game_message),
                    CallbackQueryHandler(handle_game_callback),
                ],
                ADDING_WORDS: [
                    MessageHandler(filters.TEXT & ~filters.COMMAND, handle_add_words),
                    CallbackQueryHandler(handle_callback),
                ],
                ADMIN_INPUT: [
                    MessageHandler(filters.TEXT & ~filters.COMMAND, handle_admin_input),
                    CallbackQueryHandler(handle_callback),
                ],
            },
            fallbacks=[CommandHandler("start", handle_start)],
            per_message=False,
        )

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        settings.validate_bot()

        try:
            # Initialize database
            init_db()
            if settings.catalog.seed_sample:
                db = SessionLocal()
                try:
                    VocabularyService(db).seed_sample_vocabulary()
                finally:
                    db.close()
            self.logger.info("Database initialized")

            if settings.monitoring.enabled:
                start_monitoring(settings.monitoring.port)
                self.logger.info(f"Metrics served on port {settings.monitoring.port}")

            # Create application
            self.application = Application.builder().token(settings.bot.token).build()
            self.application.bot_data[GAME_SERVICE_KEY] = self.game_service
            self.application.add_handler(self.build_handler())
            self.application.add_error_handler(handle_error)
            self.logger.info("Handlers added")

            self.cleanup_task = asyncio.create_task(self._run_cleanup())

            # Start application
            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            if self.cleanup_task:
                self.cleanup_task.cancel()
                self.cleanup_task = None
            self.application = None
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if not self.running:
            return

        try:
            if self.cleanup_task:
                self.cleanup_task.cancel()
                await asyncio.gather(self.cleanup_task, return_exceptions=True)
                self.cleanup_task = None

            if self.application:
                await self.application.updater.stop()
                await self.application.stop()
                await self.application.shutdown()
                self.application = None
                self.logger.info("Application stopped")
        finally:
            self.running = False

    async def _run_cleanup(self) -> None:
        """Periodically drop games nobody is playing any more."""
        while True:
            await asyncio.sleep(CLEANUP_INTERVAL)
            removed = self.game_service.cleanup_inactive()
            if removed:
                self.logger.info(f"Removed {removed} inactive games")
