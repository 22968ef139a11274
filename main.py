"""
Yuni Application

This is the main entry point for Yuni, a location-based feed of short-lived
posts. It wires the storage backends, the fallback chain and the services
together, and exposes them as a small command line tool.

Examples:
    python main.py post --username alice --content "Lunch here is great" --lat 13.7563 --lon 100.5018
    python main.py feed --lat 13.7563 --lon 100.5018 --radius 200
    python main.py chat-send --post-id <post_id> --message "Still open?"
"""

import sys
import json
import argparse
import logging
from typing import Optional, List, Dict, Any

from config import settings
from utils.logger import get_logger, setup_file_logging
from utils.exceptions import ConfigurationError, YuniError, ValidationFailedError
from utils.helpers import is_internet_connected
from data.models import CreatePostData, CreateUserData, get_distance_range
from data.protocols import PostStorage, RealtimeTree
from data.database import SQLitePostStore
from data.local_store import LocalKeyValueStore, LocalPostStore
from data.realtime import FirebaseRealtimeTree
from data.remote_store import RemotePostStore
from services.chat_service import ChatService
from services.error_service import to_app_error, log_error, show_error_to_user
from services.fallback import FallbackChain
from services.post_lifecycle import PostLifecycle
from services.post_service import PostService
from services.protocols import PostServiceProtocol, ChatServiceProtocol
from services.storage_service import DeviceStorage

# Set up logging
logger = get_logger(__name__)


def remote_enabled() -> bool:
    return bool(settings.ENABLE_REMOTE and settings.FIREBASE_DATABASE_URL)


def build_realtime_tree() -> Optional[RealtimeTree]:
    """Connect to the configured Firebase database, or return None when there is none."""
    if remote_enabled():
        return FirebaseRealtimeTree()
    logger.warning("No remote database configured, posts stay on this device and chat is unavailable")
    return None


def build_backends(tree: Optional[RealtimeTree], local_store: LocalKeyValueStore) -> Dict[str, PostStorage]:
    """Create every post backend the configuration allows, keyed by name."""
    backends: Dict[str, PostStorage] = {
        "local": LocalPostStore(local_store),
        "sqlite": SQLitePostStore(),
    }
    if tree is not None and remote_enabled():
        backends["remote"] = RemotePostStore(tree)
    return backends


class YuniApp:
    """
    Main application class for Yuni.

    Services can be passed in; anything left out is built from settings.
    """

    def __init__(
        self,
        post_service: Optional[PostServiceProtocol] = None,
        chat_service: Optional[ChatServiceProtocol] = None,
        device_storage: Optional[DeviceStorage] = None,
        validate: bool = True
    ):
        """
        Initialize the application.

        Args:
            post_service: Post operations
            chat_service: Chat relay
            device_storage: Device-local user storage
            validate: Whether to validate settings first
        """
        if validate:
            settings.validate_settings()

        tree = None
        local_store = None
        if post_service is None or chat_service is None:
            tree = build_realtime_tree()
        if post_service is None or device_storage is None:
            local_store = LocalKeyValueStore(settings.LOCAL_STORE_PATH)

        if post_service is None:
            chain = FallbackChain.from_order(build_backends(tree, local_store))
            post_service = PostService(chain, PostLifecycle())

        self.post_service = post_service
        if chat_service is None and tree is not None:
            chat_service = ChatService(tree)

        self.chat_service = chat_service
        self.device_storage = device_storage or DeviceStorage(local_store)

    def resolve_username(self, username: Optional[str]) -> str:
        """Use the given username, or fall back to the one stored for this device."""
        if username:
            return username

        stored = self.device_storage.get_username()
        if not stored:
            raise YuniError("No username set for this device, pass --username")
        return stored

    def remember_username(self, username: str) -> None:
        """Store a username for this device once something was accepted under it."""
        if username != self.device_storage.get_username():
            self.device_storage.save_user(CreateUserData(username, self.device_storage.get_device_id()))

    def require_chat(self) -> ChatServiceProtocol:
        if self.chat_service is None:
            raise ConfigurationError("Chat needs a remote database, set FIREBASE_DATABASE_URL")
        return self.chat_service

    # =========================================================================
    # Commands
    # =========================================================================

    def cmd_post(self, args) -> Dict[str, Any]:
        data = CreatePostData(
            username=self.resolve_username(args.username),
            content=args.content,
            latitude=args.lat,
            longitude=args.lon,
            image_uri=args.image,
        )
        post = self.post_service.create_post(data)
        self.remember_username(data.username)
        if self.device_storage.is_first_launch():
            self.device_storage.set_first_launch()
        return post.to_dict()

    def cmd_feed(self, args) -> List[Dict[str, Any]]:
        radius = args.radius if args.radius is not None else settings.DEFAULT_RADIUS_METERS
        if get_distance_range(radius) is None:
            logger.info(f"Radius {radius}m is not one of the selectable ranges")
        posts = self.post_service.get_nearby_posts(args.lat, args.lon, radius)
        return [item.to_dict() for item in posts]

    def cmd_delete(self, args) -> Dict[str, Any]:
        self.post_service.delete_post(args.post_id)
        return {"deleted": args.post_id}

    def cmd_sweep(self, args) -> Dict[str, Any]:
        return {"deleted": self.post_service.delete_expired_posts()}

    def cmd_chat_send(self, args) -> Dict[str, Any]:
        chat = self.require_chat()
        username = self.resolve_username(args.username)
        message = chat.send_message(args.post_id, args.message, username)
        self.remember_username(username)
        return message.to_dict()

    def cmd_chat_list(self, args) -> Optional[List[Dict[str, Any]]]:
        chat = self.require_chat()
        if not args.follow:
            return [m.to_dict() for m in chat.get_messages(args.post_id)]

        def show(messages):
            print(json.dumps([m.to_dict() for m in messages], indent=2, ensure_ascii=False))

        subscription = chat.listen_to_messages(args.post_id, show)
        try:
            subscription.wait(args.follow if args.follow > 0 else None)
        except KeyboardInterrupt:
            logger.info("Stopped following messages")
        finally:
            subscription.cancel()
        return None

    def cmd_user(self, args) -> Dict[str, Any]:
        if args.set:
            self.device_storage.update_username(args.set)
        return {
            "username": self.device_storage.get_username(),
            "device_id": self.device_storage.get_device_id(),
            "first_launch": self.device_storage.is_first_launch(),
            "storage": self.device_storage.get_storage_info(),
        }

    def cmd_config(self, args) -> Dict[str, Any]:
        summary = settings.get_config_summary()
        summary["online"] = is_internet_connected(settings.CONNECTIVITY_CHECK_URL, settings.CONNECTIVITY_TIMEOUT)
        return summary

    def run(self, args) -> Any:
        handler = getattr(self, "cmd_" + args.command.replace("-", "_"))
        return handler(args)


ID_OPTIONS = ('--post-id',)


def join_id_values(argv: List[str]) -> List[str]:
    """
    Rewrite ``--post-id VALUE`` as ``--post-id=VALUE``.

    Push ids usually start with '-', which argparse would otherwise read as
    an option instead of the value.
    """
    joined = []
    args = iter(argv)
    for arg in args:
        value = next(args, None) if arg in ID_OPTIONS else None
        joined.append(arg if value is None else f"{arg}={value}")
    return joined


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Yuni nearby posts')
    parser.add_argument('--log-file', type=str, default=settings.LOG_FILE, help='Log file path')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default=settings.LOG_LEVEL if settings.LOG_LEVEL in ('DEBUG', 'INFO', 'WARNING', 'ERROR') else 'INFO',
                        help='Logging level')
    commands = parser.add_subparsers(dest='command', required=True)

    post = commands.add_parser('post', help='Create a post at a location')
    post.add_argument('--username', type=str, default=None, help='Author, defaults to the stored username')
    post.add_argument('--content', type=str, required=True)
    post.add_argument('--lat', type=float, required=True)
    post.add_argument('--lon', type=float, required=True)
    post.add_argument('--image', type=str, default=None, help='Image URI to attach')

    feed = commands.add_parser('feed', help='List live posts near a location')
    feed.add_argument('--lat', type=float, required=True)
    feed.add_argument('--lon', type=float, required=True)
    feed.add_argument('--radius', type=int, default=None,
                      help=f"Radius in meters ({', '.join(str(v) for v in settings.DISTANCE_RANGE_VALUES)})")

    delete = commands.add_parser('delete', help='Delete a post')
    delete.add_argument('--post-id', type=str, required=True)

    commands.add_parser('sweep', help='Delete expired posts')

    chat_send = commands.add_parser('chat-send', help="Send a message to a post's chat")
    chat_send.add_argument('--post-id', type=str, required=True)
    chat_send.add_argument('--message', type=str, required=True)
    chat_send.add_argument('--username', type=str, default=None)

    chat_list = commands.add_parser('chat-list', help="Show a post's chat")
    chat_list.add_argument('--post-id', type=str, required=True)
    chat_list.add_argument('--follow', type=float, default=None,
                           help='Keep printing updates for this many seconds (0 until interrupted)')

    user = commands.add_parser('user', help='Show or change the user of this device')
    user.add_argument('--set', type=str, default=None, help='New username')

    commands.add_parser('config', help='Show the configuration summary')
    return parser.parse_args(join_id_values(sys.argv[1:] if argv is None else argv))


def main(argv: Optional[List[str]] = None, app: Optional[YuniApp] = None) -> int:
    """Main entry point for the application."""
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level)
    setup_file_logging(args.log_file, log_level)

    logger.info(f"Running command: {args.command}")

    try:
        app = app or YuniApp()
        result = app.run(args)
        if result is not None:
            print(json.dumps(result, indent=2, ensure_ascii=False))
        exit_code = 0

    except ValidationFailedError as e:
        for error in e.errors:
            print(f"{error.field}: {error.message}", file=sys.stderr)
        logger.warning(f"Command {args.command} rejected: {e}")
        exit_code = 1

    except YuniError as e:
        app_error = to_app_error(e)
        log_error(app_error, context=args.command)
        print(show_error_to_user(app_error), file=sys.stderr)
        exit_code = 1

    except Exception as e:
        logger.error(f"Unhandled exception in Yuni: {e}", exc_info=True)
        exit_code = 2

    # Log application end
    logger.info(f"Yuni finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
