from __future__ import annotations

import asyncio
import logging
from enum import Enum
from time import perf_counter
from typing import Any, Callable

from playwright.async_api import async_playwright

from engdesk.services.retry import retry

logger = logging.getLogger("engdesk.pdf")

# Everything else (images, media, xhr, ...) is aborted while the print view loads.
ALLOWED_RESOURCE_TYPES = frozenset({"document", "stylesheet", "script", "font"})

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-zygote",
    "--disable-extensions",
    "--mute-audio",
]

PDF_OPTIONS = {
    "format": "Letter",
    "print_background": True,
    "margin": {"top": "0.4in", "right": "0.4in", "bottom": "0.4in", "left": "0.4in"},
    "prefer_css_page_size": True,
}


class RenderStage(str, Enum):
    IDLE = "idle"
    LAUNCHING = "launching"
    NAVIGATING = "navigating"
    RENDERING = "rendering"
    DONE = "done"
    FAILED = "failed"


class PdfRenderError(Exception):
    def __init__(self, stage: RenderStage, cause: BaseException):
        super().__init__(str(cause) or cause.__class__.__name__)
        self.stage = stage
        self.cause = cause


async def _filter_resource(route) -> None:
    if route.request.resource_type in ALLOWED_RESOURCE_TYPES:
        await route.continue_()
    else:
        await route.abort()


class InvoicePdfRenderer:
    """Prints a server-rendered page to PDF through headless Chromium.

    Launch, navigation and printing are retried independently, each stage with
    its own budget of ``max_retries``. The browser is closed on every exit path.
    A renderer holds configuration only and is safe to share between requests.
    """

    def __init__(
        self,
        playwright_factory: Callable[[], Any] = async_playwright,
        *,
        max_retries: int = 3,
        initial_backoff_ms: int = 1000,
        stage_timeout_ms: int = 60000,
        viewport: dict[str, int] | None = None,
        executable_path: str | None = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self._playwright_factory = playwright_factory
        self.max_retries = max_retries
        self.initial_backoff_ms = initial_backoff_ms
        self.stage_timeout_ms = stage_timeout_ms
        self.viewport = viewport or {"width": 1200, "height": 800}
        self.executable_path = executable_path or None
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings) -> "InvoicePdfRenderer":
        return cls(
            max_retries=settings.PDF_MAX_RETRIES,
            initial_backoff_ms=settings.PDF_INITIAL_BACKOFF_MS,
            stage_timeout_ms=settings.PDF_STAGE_TIMEOUT_MS,
            viewport={"width": settings.PDF_VIEWPORT_WIDTH, "height": settings.PDF_VIEWPORT_HEIGHT},
            executable_path=settings.PDF_CHROME_EXECUTABLE,
        )

    def _retry(self, operation, operation_name: str):
        return retry(
            operation,
            self.max_retries,
            self.initial_backoff_ms,
            operation_name,
            sleep=self._sleep,
        )

    def _launch_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "headless": True,
            "timeout": self.stage_timeout_ms,
            "args": list(LAUNCH_ARGS),
        }
        if self.executable_path:
            options["executable_path"] = self.executable_path
        return options

    async def _close_browser(self, browser) -> None:
        try:
            await browser.close()
            logger.debug("browser closed")
        except Exception:
            logger.exception("failed to close browser")

    async def render(self, url: str) -> bytes:
        stage = RenderStage.IDLE
        browser = None
        started_at = perf_counter()
        try:
            async with self._playwright_factory() as pw:
                try:
                    stage = RenderStage.LAUNCHING
                    browser = await self._retry(
                        lambda: pw.chromium.launch(**self._launch_options()),
                        "Browser launch",
                    )

                    stage = RenderStage.NAVIGATING
                    page = await browser.new_page(viewport=self.viewport)
                    page.set_default_navigation_timeout(self.stage_timeout_ms)
                    await page.route("**/*", _filter_resource)
                    logger.info("navigating to %s", url)
                    await self._retry(
                        lambda: page.goto(url, wait_until="networkidle", timeout=self.stage_timeout_ms),
                        "Page navigation",
                    )

                    stage = RenderStage.RENDERING
                    pdf = await self._retry(
                        lambda: asyncio.wait_for(page.pdf(**PDF_OPTIONS), timeout=self.stage_timeout_ms / 1000.0),
                        "PDF generation",
                    )
                finally:
                    if browser is not None:
                        await self._close_browser(browser)
        except Exception as exc:
            logger.error("pdf render %s at stage=%s url=%s error=%s", RenderStage.FAILED.value, stage.value, url, exc)
            raise PdfRenderError(stage, exc) from exc

        logger.info(
            "pdf render %s bytes=%d duration_ms=%.2f",
            RenderStage.DONE.value,
            len(pdf),
            (perf_counter() - started_at) * 1000.0,
        )
        return pdf
