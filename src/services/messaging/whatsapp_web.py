"""WhatsApp Web backend driven by Playwright (headless Chromium).

Handles:
- Browser startup with a persistent profile (session survives restarts)
- Page monitoring: QR pairing, login detection, logout detection
- Message operations through the injected ``window.WAGateway`` bridge
"""

from __future__ import annotations

import asyncio
import base64
from pathlib import Path
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from src.config import Settings, get_settings
from src.logging_config import get_logger, mask_chat_id
from src.services.messaging.bridge import WHATSAPP_WEB_BRIDGE
from src.services.messaging.exceptions import (
    BackendNotInitializedError,
    ChatNotFoundError,
    MediaFetchError,
    MessagingBackendError,
)
from src.services.messaging.protocol import (
    Chat,
    LifecycleCallback,
    LifecycleEvent,
    MediaHints,
    MediaPayload,
    PairingChallenge,
    SendOptions,
    SentMessage,
    StoredMessage,
    filename_from_url,
    strip_mime_parameters,
)

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Page, Playwright

logger: Any = get_logger(__name__)

# Chrome flags for stable media processing in containers
CHROME_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--disable-extensions",
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-features=TranslateUI",
    "--disable-ipc-flooding-protection",
    "--disable-blink-features=AutomationControlled",
]

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# WhatsApp Web changes its markup frequently, so each check has fallbacks
LOGGED_IN_SELECTORS = [
    '[data-testid="chat-list"]',
    "#side",
    'div[data-tab="3"]',
]
QR_CONTAINER_SELECTOR = "div[data-ref]"
QR_CANVAS_SELECTOR = "div[data-ref] canvas"
LOADING_PROGRESS_SELECTOR = "progress"

NAVIGATION_TIMEOUT_MS = 60_000


class WhatsAppWebBackend:
    """Messaging backend backed by a WhatsApp Web page in Chromium.

    Usage:
        backend = WhatsAppWebBackend(settings)
        backend.on_lifecycle_event(tracker.handle_event)
        await backend.initialize()
        # QR / ready events arrive from the page monitor task
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._callbacks: list[LifecycleCallback] = []
        self._playwright: Playwright | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._monitor_task: asyncio.Task | None = None

        self._authenticated = False
        self._ready = False
        self._stopped = False
        self._last_qr: str | None = None
        self._last_progress: str | None = None

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    @property
    def profile_dir(self) -> Path:
        """Persistent Chromium profile for this client id."""
        return self._settings.session_dir / f"session-{self._settings.client_id}"

    def launch_args(self) -> list[str]:
        """Chromium command line, with the proxy appended when configured."""
        args = list(CHROME_ARGS)
        if self._settings.proxy_url:
            args.append(f"--proxy-server={self._settings.proxy_url}")
        return args

    def is_ready(self) -> bool:
        return self._ready

    def on_lifecycle_event(self, callback: LifecycleCallback) -> None:
        self._callbacks.append(callback)

    def _emit(self, event: LifecycleEvent, payload: Any = None) -> None:
        for callback in self._callbacks:
            try:
                callback(event, payload)
            except Exception:
                logger.exception(f"Lifecycle callback failed for {event.value}")

    async def initialize(self) -> None:
        """Launch Chromium, open WhatsApp Web and start the page monitor."""
        self.profile_dir.mkdir(parents=True, exist_ok=True)

        logger.info(
            f"Launching Chromium (headless={self._settings.headless}) "
            f"with profile {self.profile_dir}"
        )
        self._playwright = await async_playwright().start()

        launch_kwargs: dict[str, Any] = {
            "user_data_dir": str(self.profile_dir),
            "headless": self._settings.headless,
            "args": self.launch_args(),
            "user_agent": USER_AGENT,
            "viewport": {"width": 1280, "height": 800},
            "locale": "en-US",
        }
        if self._settings.browser_executable_path:
            launch_kwargs["executable_path"] = self._settings.browser_executable_path

        self._context = await self._playwright.chromium.launch_persistent_context(
            **launch_kwargs
        )
        page = self._context.pages[0] if self._context.pages else await self._context.new_page()
        page.on("crash", self._on_page_crash)
        page.on("close", self._on_page_close)
        self._page = page

        await page.goto(
            self._settings.whatsapp_web_url,
            wait_until="domcontentloaded",
            timeout=NAVIGATION_TIMEOUT_MS,
        )
        self._monitor_task = asyncio.create_task(self._monitor())
        logger.info("WhatsApp Web page opened, monitoring for pairing/login")

    async def destroy(self) -> None:
        """Stop monitoring and close the browser."""
        self._stopped = True
        self._ready = False

        if self._monitor_task is not None:
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
            self._monitor_task = None

        if self._context is not None:
            await self._context.close()
            self._context = None
        self._page = None

        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

        logger.info("WhatsApp Web client destroyed")

    def _on_page_crash(self, _page: Any) -> None:
        self._ready = False
        self._stopped = True
        self._emit(LifecycleEvent.ERROR, MessagingBackendError("WhatsApp Web page crashed"))

    def _on_page_close(self, _page: Any) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._ready = False
        self._emit(LifecycleEvent.DISCONNECTED, "NAVIGATION")

    # ==========================================================================
    # Page monitoring
    # ==========================================================================

    async def _monitor(self) -> None:
        while not self._stopped:
            try:
                await self.poll_once()
            except PlaywrightError as e:
                # Navigations inside WhatsApp Web detach frames mid-query
                logger.debug(f"Page monitor poll failed: {e}")
            except Exception as e:
                logger.exception(f"Page monitor stopped: {e}")
                self._ready = False
                self._stopped = True
                self._emit(LifecycleEvent.ERROR, e)
                return
            await asyncio.sleep(self._settings.monitor_interval_seconds)

    async def poll_once(self) -> None:
        """Inspect the page once and emit whatever lifecycle events changed."""
        page = self._require_page("monitor the page")

        if await self._is_logged_in(page):
            if not self._authenticated:
                self._authenticated = True
                self._last_qr = None
                self._emit(LifecycleEvent.AUTHENTICATED)
            # Reloads drop window.WAGateway; installing is a no-op while it exists
            installed = await page.evaluate(WHATSAPP_WEB_BRIDGE)
            if not installed:
                if self._ready:
                    self._ready = False
                    logger.warning("WhatsApp Web reloaded, waiting to re-inject the bridge")
                    self._emit(LifecycleEvent.DISCONNECTED, "RELOADING")
                else:
                    logger.debug("WhatsApp Web modules not loaded yet")
                return
            if not self._ready:
                self._ready = True
                self._emit(LifecycleEvent.CHANGE_STATE, "CONNECTED")
                self._emit(LifecycleEvent.READY)
            return

        challenge = await self._read_pairing_challenge(page)
        if challenge is not None:
            if self._authenticated:
                # Session was revoked from the phone
                self._authenticated = False
                self._ready = False
                self._stopped = True
                self._emit(LifecycleEvent.DISCONNECTED, "LOGOUT")
                return
            if challenge.code != self._last_qr:
                self._last_qr = challenge.code
                self._emit(LifecycleEvent.QR, challenge)
            return

        progress = await self._read_loading_progress(page)
        if progress is not None and progress != self._last_progress:
            self._last_progress = progress
            self._emit(LifecycleEvent.LOADING_SCREEN, (progress, "WhatsApp"))

    async def _is_logged_in(self, page: Page) -> bool:
        for selector in LOGGED_IN_SELECTORS:
            if await page.locator(selector).count() > 0:
                return True
        return False

    async def _read_pairing_challenge(self, page: Page) -> PairingChallenge | None:
        container = page.locator(QR_CONTAINER_SELECTOR).first
        if await container.count() == 0:
            return None
        code = await container.get_attribute("data-ref")
        if not code:
            return None

        image_png = None
        canvas = page.locator(QR_CANVAS_SELECTOR).first
        if await canvas.count() > 0:
            image_png = await canvas.screenshot()
        return PairingChallenge(code=code, image_png=image_png)

    async def _read_loading_progress(self, page: Page) -> str | None:
        progress = page.locator(LOADING_PROGRESS_SELECTOR).first
        if await progress.count() == 0:
            return None
        return await progress.get_attribute("value")

    # ==========================================================================
    # Operations
    # ==========================================================================

    def _require_page(self, operation: str) -> Page:
        if self._page is None:
            raise BackendNotInitializedError(operation)
        return self._page

    async def _call_bridge(self, operation: str, *args: Any) -> Any:
        page = self._require_page(operation)
        try:
            return await page.evaluate(
                "([op, args]) => window.WAGateway[op](...args)",
                [operation, list(args)],
            )
        except PlaywrightError as e:
            raise MessagingBackendError(e.message) from e

    async def get_chat_by_id(self, chat_id: str) -> Chat:
        data = await self._call_bridge("getChat", chat_id)
        if data is None:
            raise ChatNotFoundError(chat_id)
        return Chat(id=data["id"], name=data.get("name"), is_group=bool(data.get("isGroup")))

    async def send_state_typing(self, chat: Chat) -> None:
        await self._call_bridge("sendStateTyping", chat.id)

    async def clear_state(self, chat: Chat) -> None:
        await self._call_bridge("clearState", chat.id)

    async def send_message(
        self,
        chat_id: str,
        content: str | MediaPayload,
        options: SendOptions | None = None,
    ) -> SentMessage:
        options = options or SendOptions()
        if isinstance(content, MediaPayload):
            wire_content: dict[str, Any] = {
                "media": {
                    "data": base64.b64encode(content.data).decode("ascii"),
                    "mimetype": content.mimetype,
                    "filename": content.filename,
                }
            }
        else:
            wire_content = {"text": content}

        data = await self._call_bridge(
            "sendMessage",
            chat_id,
            wire_content,
            {"caption": options.caption, "quotedMessageId": options.quoted_message_id},
        )
        logger.debug(f"Sent {data.get('type')} message to {mask_chat_id(chat_id)}")
        return SentMessage(id=data["id"], timestamp=int(data["timestamp"]), type=data["type"])

    async def get_message_by_id(self, message_id: str) -> StoredMessage | None:
        data = await self._call_bridge("getMessage", message_id)
        if data is None:
            return None
        return StoredMessage(
            id=data["id"],
            type=data["type"],
            timestamp=data.get("timestamp"),
            chat_id=data.get("chatId"),
            has_media=bool(data.get("hasMedia")),
        )

    async def forward(self, message: StoredMessage, chat_id: str) -> None:
        await self._call_bridge("forwardMessage", message.id, chat_id)

    async def fetch_media_from_url(self, url: str, hints: MediaHints) -> MediaPayload:
        """Download media with the browser's request context.

        Uses the browser's cookies and proxy. The mime-type comes from the
        hint or the response headers; an undeterminable type is an error.
        """
        if self._context is None:
            raise BackendNotInitializedError("download media")

        try:
            response = await self._context.request.get(url)
        except PlaywrightError as e:
            raise MediaFetchError(e.message) from e

        try:
            if not response.ok:
                raise MediaFetchError(f"HTTP {response.status} while downloading {url}")

            mimetype = hints.mimetype or strip_mime_parameters(response.headers.get("content-type"))
            if not mimetype:
                raise MediaFetchError(f"Unable to determine MIME type of {url}")

            data = await response.body()
        finally:
            await response.dispose()

        return MediaPayload(
            mimetype=mimetype,
            data=data,
            filename=hints.filename or filename_from_url(url),
        )
