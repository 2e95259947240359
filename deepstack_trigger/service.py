"""Service orchestration: wires settings, clients, handlers and triggers together."""

import threading
from typing import Callable, List, Optional

from .clients.mqtt import MqttClient
from .clients.pushbullet import PushbulletClient
from .clients.pushover import PushoverClient
from .clients.telegram import TelegramClient
from .clients.web_request import WebRequestClient
from .config.defaults import DEFAULT_PATHS, SYSTEM_CONSTANTS
from .exceptions import ConfigurationError, NotificationError
from .handlers.base import NotificationHandler
from .handlers.dispatcher import NotificationDispatcher
from .handlers.mqtt_handler import MqttHandler
from .handlers.pushbullet_handler import PushbulletHandler
from .handlers.pushover_handler import PushoverHandler
from .handlers.telegram_handler import TelegramHandler
from .handlers.web_request_handler import WebRequestHandler
from .logging_config import get_logger, setup_logging
from .models.config import MqttSettings, Settings
from .mqtt_router import MqttRouter
from .services.deepstack_client import DeepStackClient
from .services.error_handler import ErrorHandler, ErrorSeverity
from .services.file_watcher import FileWatcher
from .services.local_storage import LocalStorage
from .settings_manager import SettingsManager
from .trigger_manager import TriggerManager
from .web.app import TriggerWebApp

logger = get_logger("service")


class TriggerService:
    """Starts and stops every part of the detection trigger service."""

    def __init__(self,
                 settings_manager: Optional[SettingsManager] = None,
                 storage_root: str = DEFAULT_PATHS["local_storage_dir"],
                 log_dir: Optional[str] = DEFAULT_PATHS["logs_dir"],
                 mqtt_client_factory: Callable[[MqttSettings], MqttClient] = MqttClient):
        self.settings_manager = settings_manager or SettingsManager()
        self.storage_root = storage_root
        self.log_dir = log_dir
        self.mqtt_client_factory = mqtt_client_factory

        self.error_handler = ErrorHandler()
        self.settings: Optional[Settings] = None
        self.mqtt_client: Optional[MqttClient] = None
        self.storage: Optional[LocalStorage] = None
        self.dispatcher: Optional[NotificationDispatcher] = None
        self.file_watcher: Optional[FileWatcher] = None
        self.manager: Optional[TriggerManager] = None
        self.router: Optional[MqttRouter] = None
        self.web_app: Optional[TriggerWebApp] = None
        self.web_thread: Optional[threading.Thread] = None
        self.running = False

    def start(self) -> None:
        """Start the service.

        Raises:
            ConfigurationError: If the settings or triggers are missing or invalid
        """
        self.settings = self.settings_manager.load_settings()
        setup_logging(log_dir=self.log_dir, verbose=self.settings.verbose)
        logger.info("Starting detection trigger service")

        # MQTT first so configuration problems further down can be reported on the status topic
        self.mqtt_client = self._connect_mqtt(self.settings)

        self.storage = LocalStorage(self.storage_root, self.settings.purge_age, self.settings.purge_interval)
        self.storage.initialize()
        self.storage.start_background_purge()

        self.dispatcher = NotificationDispatcher(self.build_handlers(self.settings))
        self.file_watcher = FileWatcher(
            SYSTEM_CONSTANTS["FILE_WATCHER_POLL_SECONDS"],
            await_write_finish=self.settings.await_write_finish,
        )
        self.manager = TriggerManager(
            self.settings,
            DeepStackClient(self.settings.deepstack_uri),
            dispatcher=self.dispatcher,
            storage=self.storage,
            file_watcher=self.file_watcher,
            error_handler=self.error_handler,
        )

        try:
            self.manager.load_configuration(self.settings_manager.load_triggers())
        except ConfigurationError as e:
            logger.error(f"Unable to start: {e}")
            self.dispatcher.publish_server_state("offline", str(e))
            self.stop()
            raise

        self.manager.verify_watch_locations()
        self.file_watcher.start()
        self.manager.start_watching()

        if self.mqtt_client is not None:
            self.router = MqttRouter(self.mqtt_client, self.manager)
            self.router.initialize()

        self.settings_manager.register_change_callback(self.manager.reload_configuration)
        self.settings_manager.start_file_watcher()

        if self.settings.enable_web_server:
            self._start_web_server(self.settings.port)

        self.running = True
        self.dispatcher.publish_server_state("online")
        self.manager.publish_statistics()
        logger.info("Detection trigger service started")

    def stop(self) -> None:
        """Stop watching, cancel pending off timers and release every pool."""
        logger.info("Stopping detection trigger service...")
        self.running = False

        self.settings_manager.stop_file_watcher()
        if self.manager:
            self.manager.shutdown()
        if self.file_watcher:
            self.file_watcher.stop()
        if self.dispatcher:
            self.dispatcher.shutdown()
        if self.storage:
            self.storage.stop_background_purge()
        if self.mqtt_client:
            self.mqtt_client.disconnect()

        logger.info("Detection trigger service stopped")

    def build_handlers(self, settings: Settings) -> List[NotificationHandler]:
        """Create one handler per notification channel."""
        common = {"storage": self.storage, "error_handler": self.error_handler}

        telegram_client = None
        if settings.telegram and settings.telegram.enabled:
            telegram_client = TelegramClient(settings.telegram.bot_token)
            logger.info("Telegram enabled.")

        pushover_client = None
        if settings.pushover and settings.pushover.enabled:
            pushover_client = PushoverClient(settings.pushover.api_key)
            logger.info("Pushover enabled.")

        pushbullet_client = None
        if settings.pushbullet and settings.pushbullet.enabled:
            pushbullet_client = PushbulletClient(settings.pushbullet.access_token)
            logger.info("Pushbullet enabled.")

        return [
            MqttHandler(settings, self.mqtt_client, **common),
            TelegramHandler(settings, telegram_client, **common),
            PushoverHandler(settings, pushover_client, **common),
            PushbulletHandler(settings, pushbullet_client, **common),
            WebRequestHandler(settings, WebRequestClient(), **common),
        ]

    def _connect_mqtt(self, settings: Settings) -> Optional[MqttClient]:
        if not settings.mqtt:
            logger.info("No MQTT settings specified. MQTT is disabled.")
            return None

        if not settings.mqtt.enabled:
            logger.info("MQTT is disabled via settings.")
            return None

        client = self.mqtt_client_factory(settings.mqtt)
        try:
            client.connect()
        except NotificationError as e:
            self.error_handler.handle_error("service.mqtt", e, ErrorSeverity.HIGH)
            return None

        return client

    def _start_web_server(self, port: int) -> None:
        self.web_app = TriggerWebApp(self.manager, self.storage)

        def run_web_server():
            try:
                self.web_app.run(port=port)
            except OSError as e:
                logger.error(f"Web server failed to start: {e}")

        self.web_thread = threading.Thread(target=run_web_server, name="web-server", daemon=True)
        self.web_thread.start()
        logger.info(f"Web server thread started on port {port}")
