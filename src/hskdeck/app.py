"""Main application entry point."""
import logging
from typing import Optional

from telegram.ext import Application, CallbackQueryHandler, CommandHandler

from hskdeck.bot import (
    AUDIO_KEY,
    LOADER_KEY,
    SCHEDULER_KEY,
    SESSION_KEY,
    handle_callback,
    handle_start,
    make_speaker,
)
from hskdeck.config import settings
from hskdeck.errors import InvalidInputError
from hskdeck.models.base import init_db
from hskdeck.monitoring import start_monitoring
from hskdeck.services.advance_scheduler import AdvanceScheduler
from hskdeck.services.audio_service import AudioService
from hskdeck.services.progress_store import ProgressStore
from hskdeck.services.session_service import SessionService
from hskdeck.services.vocabulary_loader import VocabularyLoader


class DeckBot:
    """Main application class."""

    def __init__(self):
        """Initialize the application."""
        self.application: Optional[Application] = None
        self.scheduler: Optional[AdvanceScheduler] = None
        self.session: Optional[SessionService] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def build_session(self, application: Application) -> SessionService:
        """Restore the stored progress and create the session around it."""
        store = ProgressStore()
        store.load()
        return SessionService(store, speak=make_speaker(application))

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            # Initialize database
            init_db()
            self.logger.info("Database initialized")

            # Create application
            self.application = Application.builder().token(settings.bot.token).build()
            self.logger.info("Application created")

            self.session = self.build_session(self.application)
            self.scheduler = AdvanceScheduler()
            loader = VocabularyLoader()
            self.application.bot_data.update({
                SESSION_KEY: self.session,
                LOADER_KEY: loader,
                AUDIO_KEY: AudioService(),
                SCHEDULER_KEY: self.scheduler,
            })

            try:
                loader.load_into(self.session)
            except InvalidInputError as e:
                # The menu offers a retry
                self.logger.warning(f"Starting without vocabulary: {e}")

            self.application.add_handler(CommandHandler("start", handle_start))
            self.application.add_handler(CallbackQueryHandler(handle_callback))
            self.logger.info("Handlers added")

            if settings.monitoring.port:
                start_monitoring(settings.monitoring.port)
                self.logger.info(f"Metrics exported on port {settings.monitoring.port}")

            # Start application
            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if self.scheduler:
            await self.scheduler.stop()
            self.scheduler = None
            self.logger.info("Advance scheduler stopped")

        if not self.running:
            return

        try:
            if self.application:
                await self.application.updater.stop()
                await self.application.stop()
                await self.application.shutdown()
                self.application = None
                self.logger.info("Application stopped")

            if self.session:
                self.session.store.save()
                self.logger.info("Progress saved")

            self.running = False

        except Exception as e:
            self.logger.error("Error while stopping application: %s", str(e))
            self.running = False
            self.application = None
            raise
