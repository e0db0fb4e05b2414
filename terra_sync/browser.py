from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from playwright.sync_api import Browser, BrowserContext, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from .config import Settings
from .errors import AuthError, FetchError, NetworkError, NotFoundError

LOGIN_FORM = "form[name=loginForm]"
PROXY_VARIABLES = ("HTTP_PROXY", "HTTPS_PROXY", "http_proxy", "https_proxy")


@contextmanager
def proxy_disabled(enabled: bool = True):
    """Drop proxy variables from the environment for the duration of the block."""
    if not enabled:
        yield
        return
    saved = {name: os.environ.pop(name) for name in PROXY_VARIABLES if name in os.environ}
    try:
        yield
    finally:
        os.environ.update(saved)


def create_context(settings: Settings, headful: bool = False) -> Tuple[Playwright, Browser, BrowserContext]:
    try:
        playwright = sync_playwright().start()
    except PlaywrightError as exc:
        raise FetchError(f"Unable to start Playwright: {exc}") from exc

    browser = None
    try:
        args = ["--no-proxy-server"] if settings.terra_no_proxy else []
        browser = playwright.chromium.launch(headless=not headful, args=args)
        storage_state = Path(settings.storage_state_path)
        context = browser.new_context(storage_state=str(storage_state) if storage_state.exists() else None)
    except PlaywrightError as exc:
        if browser is not None:
            browser.close()
        playwright.stop()
        raise FetchError(f"Unable to launch browser: {exc}") from exc
    return playwright, browser, context


def feed_url(settings: Settings) -> str:
    base = settings.terra_base_url if settings.terra_base_url.endswith("/") else settings.terra_base_url + "/"
    return urljoin(base, f"{settings.terra_user_id}/schedule/view?aqua_format=ical&exa=ical")


def _page_title(body: bytes) -> Optional[str]:
    soup = BeautifulSoup(body, "lxml")
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return None


def _looks_like_html(body: bytes) -> bool:
    head = body.lstrip()[:64].lower()
    return head.startswith(b"<!doctype html") or head.startswith(b"<html") or b"<head" in head


def login(page: Page, settings: Settings) -> None:
    page.goto(settings.terra_base_url)
    if not page.query_selector(LOGIN_FORM):
        logging.info("Reusing stored Terra session")
        return

    logging.info("Attempting Terra login as %s", settings.terra_user_name)
    page.fill(f"{LOGIN_FORM} input[name=loginName]", settings.terra_user_name)
    page.fill(f"{LOGIN_FORM} input[name=password]", settings.terra_password)
    submit = page.query_selector(f"{LOGIN_FORM} [type=submit]")
    if submit:
        submit.click()
    else:
        page.press(f"{LOGIN_FORM} input[name=password]", "Enter")
    page.wait_for_load_state("networkidle")

    if page.query_selector(LOGIN_FORM):
        raise AuthError("Terra login failed, still on the login form")


class TerraFeedFetcher:
    """Logs in to Terra with a browser session and downloads the iCal schedule."""

    def __init__(self, settings: Settings, headful: bool = False):
        self.settings = settings
        self.headful = headful

    def fetch(self) -> bytes:
        if not self.settings.terra_user_id:
            raise FetchError("TERRA_USER_ID is not set")

        with proxy_disabled(self.settings.terra_no_proxy):
            playwright, browser, context = create_context(self.settings, headful=self.headful)
            try:
                page = context.new_page()
                login(page, self.settings)
                url = feed_url(self.settings)
                logging.info("Downloading schedule %s", url)
                response = context.request.get(url)
                status = response.status
                body = response.body()
                context.storage_state(path=self.settings.storage_state_path)
            except PlaywrightError as exc:
                raise NetworkError(f"Unable to reach Terra: {exc}") from exc
            finally:
                context.close()
                browser.close()
                playwright.stop()

        if status in (401, 403):
            raise AuthError(f"Terra refused the schedule download ({status})")
        if status == 404:
            raise NotFoundError(f"No schedule published at {url}")
        if not 200 <= status < 300:
            raise NetworkError(f"Terra returned HTTP {status} for {url}")
        if _looks_like_html(body):
            title = _page_title(body)
            raise AuthError(f"Terra served an HTML page instead of the calendar: {title or 'untitled page'}")

        path = Path(self.settings.ics_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(body)
        logging.info("Downloaded %d bytes to %s", len(body), path)
        return body


def read_local_feed(path: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise FetchError(f"Unable to read feed file {path}: {exc}") from exc
