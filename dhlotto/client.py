from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit

import requests

from .cipher import encrypt_with
from .config import SiteSettings
from .errors import (
    InvalidCredentials,
    KeyFetchError,
    LoginUnconfirmed,
    TransportError,
    snippet,
)
from .extraction import ACCOUNT_PAGE_BALANCE, PURCHASE_PAGE_BALANCE, extract_money, parse_html
from .types import Credentials, RSAPublicKeyMaterial

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

BROWSER_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
}

LOGIN_FAILURE_PHRASES = (
    "아이디 또는 비밀번호를 확인해주세요",
    "로그인에 실패",
    "loginFail",
)
LOGGED_IN_URL_MARKERS = ("main", "index")
LOGGED_IN_BODY_MARKERS = ("로그아웃", "logout")
SESSION_COOKIES = ("JSESSIONID", "DHJSESSIONID")


def url_marks_logged_in(url: str) -> bool:
    if any(marker in url for marker in LOGGED_IN_URL_MARKERS):
        return True
    return urlsplit(url).path in ("", "/")


def classify_login(body: str, final_url: str, session_cookie: str) -> None:
    """Raise unless the login response proves an authenticated session.

    Failure phrases are checked first because a failure page may still carry
    stray logged-in markers.
    """
    if any(phrase in body for phrase in LOGIN_FAILURE_PHRASES):
        raise InvalidCredentials("login rejected: user id or password is incorrect")

    marked = url_marks_logged_in(final_url) or any(marker in body for marker in LOGGED_IN_BODY_MARKERS)
    if marked and session_cookie:
        return
    raise LoginUnconfirmed("login could not be confirmed (no session cookie or logged-in marker)")


class LotteryClient:
    """One authenticated browsing session against the dhlottery site.

    The underlying ``requests.Session`` keeps the cookie jar for the whole
    client lifetime; never share an instance between accounts.
    """

    def __init__(
        self,
        site: SiteSettings,
        logger: Optional[logging.Logger] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._site = site
        self._logger = logger or logging.getLogger("dhlotto.client")
        self._session = session or requests.Session()
        self._session.max_redirects = site.max_redirects
        self.authenticated = False

    @property
    def site(self) -> SiteSettings:
        return self._site

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def __enter__(self) -> "LotteryClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        data: Any = None,
    ) -> requests.Response:
        merged: Dict[str, str] = dict(BROWSER_HEADERS)
        if headers:
            merged.update(headers)
        try:
            response = self._session.request(
                method,
                url,
                headers=merged,
                data=data,
                timeout=self._site.timeout_seconds,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        self._logger.debug("%s %s -> %s (%s)", method, url, response.status_code, response.url)
        return response

    def session_cookie(self) -> str:
        for cookie in self._session.cookies:
            if cookie.name in SESSION_COOKIES and cookie.value:
                return cookie.value
        return ""

    def fetch_public_key(self) -> RSAPublicKeyMaterial:
        headers = {
            "Accept": "application/json, text/javascript, */*; q=0.01",
            "X-Requested-With": "XMLHttpRequest",
            "Referer": self._site.login_page,
        }
        try:
            response = self.request("GET", self._site.public_key_url, headers=headers)
        except TransportError as exc:
            raise KeyFetchError(f"public key request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise KeyFetchError(f"public key response is not JSON: {snippet(response.text, 200)}") from exc

        envelope = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(envelope, dict):
            envelope = payload if isinstance(payload, dict) else {}
        modulus = envelope.get("rsaModulus")
        exponent = envelope.get("publicExponent")
        if not modulus or not exponent:
            raise KeyFetchError("public key response is missing rsaModulus/publicExponent")
        return RSAPublicKeyMaterial(modulus_hex=str(modulus), exponent_hex=str(exponent))

    def login(self, credentials: Credentials) -> None:
        self.authenticated = False
        self._logger.info("Login 1/4: opening login page")
        self.request("GET", self._site.login_page)

        self._logger.info("Login 2/4: fetching RSA public key")
        key = self.fetch_public_key()
        self._logger.debug("RSA modulus %s..., exponent %s", key.modulus_hex[:20], key.exponent_hex)

        self._logger.info("Login 3/4: encrypting credentials")
        form = {
            "userId": encrypt_with(key, credentials.identifier),
            "userPswdEncn": encrypt_with(key, credentials.secret),
        }

        self._logger.info("Login 4/4: submitting login form")
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Referer": self._site.login_page,
            "Origin": self._site.www_base,
        }
        response = self.request("POST", self._site.login_action_url, headers=headers, data=form)
        self._logger.info("Login response %s from %s", response.status_code, response.url)

        body = response.text or ""
        try:
            classify_login(body, response.url, self.session_cookie())
        except LoginUnconfirmed:
            self._logger.warning("Login unconfirmed; response sample: %s", snippet(body))
            raise

        self.authenticated = True
        self._logger.info("Login succeeded for %s", credentials.identifier)

    def check_balance(self) -> Optional[int]:
        """Return the deposit balance in won.

        ``None`` means no balance field could be read; ``0`` is only returned
        when the page explicitly showed zero.
        """
        self._logger.info("Checking deposit balance")
        response = self.request(
            "GET",
            self._site.purchase_page,
            headers={"Referer": self._site.main_page},
        )
        balance = extract_money(parse_html(response.text), PURCHASE_PAGE_BALANCE)

        if not balance:
            self._logger.info("Balance not found on purchase page; trying account page")
            fallback = self.request("GET", self._site.account_page)
            fallback_balance = extract_money(parse_html(fallback.text), ACCOUNT_PAGE_BALANCE)
            if fallback_balance or balance is None:
                balance = fallback_balance

        if balance is None:
            self._logger.warning("Balance field not found; page sample: %s", snippet(response.text, 300))
        else:
            self._logger.info("Balance: %s won", f"{balance:,}")
        return balance
