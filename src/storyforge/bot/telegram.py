"""
Telegram transport for the conversation bot.

``TelegramClient`` talks to the Telegram Bot HTTP API with ``requests``;
``TelegramBotRunner`` long-polls for updates and feeds text messages to a
``ConversationBot``.
"""

import logging
import threading
import time
from collections import deque
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Deque, Dict, List, Optional

import requests

from .conversation import ConversationBot, Messenger
from .sessions import SessionStore

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"
DEFAULT_POLL_TIMEOUT = 30
DEFAULT_SWEEP_INTERVAL = 60
DEFAULT_RETRY_DELAY = 5
DEFAULT_MAX_WORKERS = 8


class TelegramError(Exception):
    """Telegram API call failed or returned ``ok: false``."""

    def __init__(self, method: str, description: str, error_code: Optional[int] = None):
        self.method = method
        self.description = description
        self.error_code = error_code
        super().__init__(f"Telegram {method} failed: {description}")


class TelegramClient(Messenger):
    """Minimal Telegram Bot API client (getUpdates, sendMessage)."""

    def __init__(
        self,
        token: str,
        session: Optional[requests.Session] = None,
        base_url: str = TELEGRAM_API_URL,
        request_timeout: float = 10
    ):
        if not token:
            raise ValueError("TELEGRAM_BOT_TOKEN environment variable is required")
        self.token = token
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout

    def _url(self, method: str) -> str:
        return f"{self.base_url}/bot{self.token}/{method}"

    def call(self, method: str, payload: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Any:
        """
        Call a Bot API method and return its ``result``.

        Raises:
            TelegramError: On network failure or an error answer
        """
        try:
            response = self.session.post(
                self._url(method),
                json=payload or {},
                timeout=timeout or self.request_timeout,
            )
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            raise TelegramError(method, str(e)) from e

        if not body.get("ok"):
            raise TelegramError(
                method,
                body.get("description", f"HTTP {response.status_code}"),
                body.get("error_code"),
            )
        return body.get("result")

    def get_updates(self, offset: Optional[int] = None, timeout: int = DEFAULT_POLL_TIMEOUT) -> List[Dict[str, Any]]:
        payload: Dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        # The HTTP timeout must outlast the long-poll window
        return self.call("getUpdates", payload, timeout=timeout + self.request_timeout) or []

    def send_message(
        self,
        chat_id: int,
        text: str,
        keyboard: Optional[List[str]] = None,
        remove_keyboard: bool = False,
        parse_mode: Optional[str] = None,
    ) -> None:
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if keyboard:
            payload["reply_markup"] = {
                "keyboard": [[{"text": option}] for option in keyboard],
                "one_time_keyboard": True,
                "resize_keyboard": True,
            }
        elif remove_keyboard:
            payload["reply_markup"] = {"remove_keyboard": True}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        self.call("sendMessage", payload)


class TelegramBotRunner:
    """
    Long-polling loop that dispatches incoming messages to the bot.

    Messages are handled on a thread pool so a slow story generation for one
    user does not hold up anyone else. Messages from the same user are queued
    and handled one at a time, in the order they arrived.
    """

    def __init__(
        self,
        client: TelegramClient,
        bot: ConversationBot,
        sessions: SessionStore,
        poll_timeout: int = DEFAULT_POLL_TIMEOUT,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_workers: int = DEFAULT_MAX_WORKERS,
        executor: Optional[Executor] = None,
    ):
        self.client = client
        self.bot = bot
        self.sessions = sessions
        self.poll_timeout = poll_timeout
        self.sweep_interval = sweep_interval
        self.retry_delay = retry_delay
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="storyforge-bot"
        )
        self.offset: Optional[int] = None
        self._running = False
        self._last_sweep = time.monotonic()
        # user id -> messages waiting behind the one being handled
        self._pending: Dict[int, Deque[Dict[str, Any]]] = {}
        self._pending_lock = threading.Lock()

    @staticmethod
    def _sender_id(update: Dict[str, Any]) -> Optional[int]:
        message = update.get("message") or {}
        sender = message.get("from") or {}
        chat = message.get("chat") or {}
        if message.get("text") is None or "id" not in sender or "id" not in chat:
            return None
        return sender["id"]

    def dispatch(self, update: Dict[str, Any]) -> None:
        """Hand one update to the bot on the calling thread."""
        if self._sender_id(update) is None:
            return
        message = update["message"]
        self.bot.handle_message(message["from"]["id"], message["chat"]["id"], message["text"])

    def _handle(self, update: Dict[str, Any]) -> None:
        try:
            self.dispatch(update)
        except Exception as e:
            logger.error(f"Error handling Telegram update {update.get('update_id')}: {e}", exc_info=True)

    def _enqueue(self, user_id: int, update: Dict[str, Any]) -> None:
        with self._pending_lock:
            queue = self._pending.get(user_id)
            if queue is not None:
                queue.append(update)
                return
            self._pending[user_id] = deque([update])
        self.executor.submit(self._drain, user_id)

    def _drain(self, user_id: int) -> None:
        while True:
            with self._pending_lock:
                queue = self._pending[user_id]
                if not queue:
                    del self._pending[user_id]
                    return
                update = queue.popleft()
            self._handle(update)

    def poll_once(self) -> int:
        """
        Fetch one batch of updates and queue each text message for handling.

        Returns:
            Number of updates received

        Raises:
            TelegramError: If fetching updates failed
        """
        updates = self.client.get_updates(offset=self.offset, timeout=self.poll_timeout)
        for update in updates:
            self.offset = update["update_id"] + 1
            user_id = self._sender_id(update)
            if user_id is not None:
                self._enqueue(user_id, update)
        return len(updates)

    def sweep_if_due(self) -> None:
        now = time.monotonic()
        if now - self._last_sweep >= self.sweep_interval:
            self.sessions.sweep()
            self._last_sweep = now

    def run_forever(self) -> None:
        """Poll until ``stop()`` is called. Polling errors are logged and retried after a delay."""
        self._running = True
        logger.info("Telegram bot initialized and polling for updates")
        try:
            while self._running:
                try:
                    self.poll_once()
                except TelegramError as e:
                    logger.error(f"Telegram bot polling error: {e}")
                    time.sleep(self.retry_delay)
                self.sweep_if_due()
        finally:
            self.shutdown(wait=False)

    def stop(self) -> None:
        self._running = False

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting messages; with ``wait`` also finish the queued ones."""
        self.executor.shutdown(wait=wait)
