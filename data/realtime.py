"""
Realtime Database Module

Clients for the remote realtime database, a schema-less JSON tree addressed
by slash-separated paths such as ``posts/{id}/messages/{id}``.

- FirebaseRealtimeTree talks to a Firebase Realtime Database over its REST
  interface with requests, and streams changes with Server-Sent Events.
- InMemoryRealtimeTree keeps the tree in process, for embedding callers and
  as the test double for the remote store.
"""

import copy
import json
import threading
from typing import Any, Callable, Dict, List, Optional

import requests

from config import settings
from utils.exceptions import NetworkError, QueryError, RemoteTimeoutError
from utils.helpers import generate_push_id
from utils.logger import get_logger

logger = get_logger(__name__)

Listener = Callable[[Any], None]


def _split(path: str) -> List[str]:
    return [part for part in path.strip("/").split("/") if part]


class ListenerSubscription:
    """Handle for a registered listener.

    ``cancel`` must be called when the consumer goes away; it is safe to call
    more than once.
    """

    def __init__(self, path: str, on_cancel: Optional[Callable[["ListenerSubscription"], None]] = None):
        self.path = path
        self._on_cancel = on_cancel
        self._stopped = threading.Event()

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()

    def cancel(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        if self._on_cancel:
            self._on_cancel(self)
        logger.debug(f"Listener on {self.path} cancelled")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the subscription is cancelled or ends."""
        return self._stopped.wait(timeout)


# =============================================================================
# Firebase REST client
# =============================================================================

class FirebaseRealtimeTree:
    """Firebase Realtime Database client over the REST API."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        auth_token: Optional[str] = None,
        write_timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the client.

        Args:
            database_url: Root URL, e.g. ``https://<project>.firebasedatabase.app``
            auth_token: Optional database secret or ID token sent as ``auth``
            write_timeout: Seconds allowed for writes, deletes and default reads
            session: requests session to reuse (injectable for tests)
        """
        self.database_url = (database_url or settings.FIREBASE_DATABASE_URL).rstrip("/")
        self.auth_token = auth_token if auth_token is not None else settings.FIREBASE_AUTH_TOKEN
        self.write_timeout = write_timeout or settings.REMOTE_WRITE_TIMEOUT
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.database_url}/{'/'.join(_split(path))}.json"

    def _params(self) -> Dict[str, str]:
        return {"auth": self.auth_token} if self.auth_token else {}

    def _request(self, method: str, path: str, timeout: Optional[float] = None, **kwargs) -> Any:
        url = self._url(path)
        try:
            response = self.session.request(
                method, url, params=self._params(), timeout=timeout or self.write_timeout, **kwargs
            )
            response.raise_for_status()
        except requests.Timeout as e:
            raise RemoteTimeoutError(f"{method} {path} timed out") from e
        except requests.ConnectionError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e
        except requests.HTTPError as e:
            raise QueryError(f"{method} {path} rejected: {e}") from e
        except requests.RequestException as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise QueryError(f"{method} {path} returned invalid JSON") from e

    def get(self, path: str, timeout: Optional[float] = None) -> Any:
        return self._request("GET", path, timeout=timeout)

    def set(self, path: str, value: Any) -> None:
        self._request("PUT", path, json=value)

    def push(self, path: str, value: Any) -> str:
        result = self._request("POST", path, json=value)
        if not isinstance(result, dict) or "name" not in result:
            raise QueryError(f"POST {path} did not return a key")
        return result["name"]

    def generate_key(self, path: str) -> str:
        # push ids are generated client side, the same way the SDKs do it
        return generate_push_id()

    def delete(self, path: str) -> None:
        self._request("DELETE", path)

    def listen(self, path: str, callback: Listener) -> ListenerSubscription:
        """
        Stream changes at ``path`` on a daemon thread.

        Every ``put`` or ``patch`` event triggers a fresh read of the whole
        path, and ``callback`` receives that value.

        Args:
            path: Path to watch
            callback: Called with the full value at ``path`` after every change

        Returns:
            ListenerSubscription: Call ``cancel()`` to close the stream
        """
        state: Dict[str, Any] = {"response": None}

        def close_stream(_subscription: ListenerSubscription) -> None:
            response = state["response"]
            if response is not None:
                response.close()

        subscription = ListenerSubscription(path, on_cancel=close_stream)

        def run() -> None:
            try:
                response = self.session.get(
                    self._url(path),
                    params=self._params(),
                    headers={"Accept": "text/event-stream"},
                    stream=True,
                    timeout=(self.write_timeout, None),
                )
                response.raise_for_status()
                state["response"] = response
                if not subscription.active:
                    response.close()
                    return

                event = None
                for line in response.iter_lines(decode_unicode=True):
                    if not subscription.active:
                        break
                    if not line:
                        event = None
                        continue
                    if line.startswith("event:"):
                        event = line[len("event:"):].strip()
                    elif line.startswith("data:") and event in ("put", "patch"):
                        callback(self.get(path))
                    elif event in ("cancel", "auth_revoked"):
                        logger.warning(f"Stream on {path} ended by server: {event}")
                        break
            except (requests.RequestException, NetworkError, QueryError) as e:
                if subscription.active:
                    logger.error(f"Stream on {path} failed: {e}")
            except AttributeError:
                # response closed from another thread mid-read
                if subscription.active:
                    raise
            finally:
                subscription.cancel()

        thread = threading.Thread(target=run, name=f"listen:{path}", daemon=True)
        thread.start()
        return subscription


# =============================================================================
# In-process tree
# =============================================================================

class InMemoryRealtimeTree:
    """In-process implementation of the realtime tree primitives.

    Listeners are notified synchronously after each write that touches their
    path. Setting ``online = False`` makes every call raise NetworkError,
    which simulates losing the connection.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._root: Dict[str, Any] = copy.deepcopy(data) if data else {}
        self._listeners: List[Dict[str, Any]] = []
        self.online = True

    def _check_online(self) -> None:
        if not self.online:
            raise NetworkError("Realtime database is unreachable")

    def _read(self, parts: List[str]) -> Any:
        node: Any = self._root
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return copy.deepcopy(node)

    def _write(self, parts: List[str], value: Any) -> None:
        if not parts:
            self._root = copy.deepcopy(value) if isinstance(value, dict) else {}
            return

        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = {}
                node[part] = child
            node = child

        if value is None:
            node.pop(parts[-1], None)
            self._prune(parts[:-1])
        else:
            # round-trip through JSON so stored values look like what the REST API returns
            node[parts[-1]] = json.loads(json.dumps(value))

    def _prune(self, parts: List[str]) -> None:
        # empty objects do not exist in the tree
        if parts and self._read(parts) == {}:
            self._write(parts, None)

    def _notify(self, parts: List[str]) -> None:
        for listener in list(self._listeners):
            watched = listener["parts"]
            overlap = min(len(watched), len(parts))
            if watched[:overlap] == parts[:overlap]:
                listener["callback"](self._read(watched))

    def get(self, path: str, timeout: Optional[float] = None) -> Any:
        self._check_online()
        return self._read(_split(path))

    def set(self, path: str, value: Any) -> None:
        self._check_online()
        parts = _split(path)
        self._write(parts, value)
        self._notify(parts)

    def push(self, path: str, value: Any) -> str:
        key = self.generate_key(path)
        self.set(f"{path.rstrip('/')}/{key}", value)
        return key

    def generate_key(self, path: str) -> str:
        self._check_online()
        return generate_push_id()

    def delete(self, path: str) -> None:
        self._check_online()
        parts = _split(path)
        self._write(parts, None)
        self._notify(parts)

    def listen(self, path: str, callback: Listener) -> ListenerSubscription:
        self._check_online()
        entry = {"parts": _split(path), "callback": callback}

        def remove(_subscription: ListenerSubscription) -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        subscription = ListenerSubscription(path, on_cancel=remove)
        self._listeners.append(entry)
        callback(self._read(entry["parts"]))
        return subscription

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
