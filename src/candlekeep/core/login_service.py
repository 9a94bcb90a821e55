"""Core login service — browser callback with manual fallback.

Flow
----
1. Already holding a credential → done, nothing is bound or called.
2. Bind a single-use local listener and show the ``/cli-auth`` URL.
3. Wait for the one callback (optionally bounded by a timeout).
4. On any failure of steps 2–3 ask the user to paste a key instead.
5. Validate the credential against ``/auth/whoami``.
6. Persist it — only a validated credential is ever written.

The listener runs its blocking ``accept()`` on a worker thread and
hands back a single result through a future; this coroutine only
awaits that future, so its own HTTP calls are never blocked.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from candlekeep.core.callback import build_auth_url
from candlekeep.core.models import CallbackResult, LoginOutcome, LoginSource
from candlekeep.core.protocols import (
    CallbackChannel,
    CredentialStore,
    IdentityApi,
    LoginInteraction,
)
from candlekeep.exceptions import (
    AuthFlowError,
    CallbackTimedOutError,
    CandleKeepError,
    CredentialInvalidError,
)

logger = logging.getLogger(__name__)

ListenerFactory = Callable[[], CallbackChannel]
"""Returns an already-bound listener or raises ``ListenerBindFailedError``."""

ApiFactory = Callable[[str], IdentityApi]
"""Builds an API client authenticated with the given candidate credential."""


class LoginService:
    """Interactive login orchestrator.

    Parameters
    ----------
    store:
        Where the credential is read from and persisted to.
    listener_factory:
        Binds the local callback listener.
    api_factory:
        Builds a client for credential validation.
    interaction:
        CLI-side prompts and notices.
    callback_timeout:
        Seconds to wait for the browser callback.  ``None`` waits until
        the user interrupts the process.
    """

    def __init__(
        self,
        store: CredentialStore,
        listener_factory: ListenerFactory,
        api_factory: ApiFactory,
        interaction: LoginInteraction,
        *,
        callback_timeout: float | None = None,
    ) -> None:
        self._store = store
        self._listener_factory = listener_factory
        self._api_factory = api_factory
        self._interaction = interaction
        self._callback_timeout = callback_timeout

    async def login(self) -> LoginOutcome:
        """Run the login flow.

        Raises
        ------
        CredentialInvalidError
            When no credential was supplied or the service rejected it.
        """
        if self._store.api_key:
            logger.debug("Credential already present; skipping login")
            return LoginOutcome(source="existing")

        source: LoginSource = "browser"
        try:
            credential = (await self._browser_flow()).credential
        except (AuthFlowError, OSError) as exc:
            logger.info("Browser login failed: %s", exc)
            self._interaction.browser_flow_failed(exc)
            credential = await self._manual_entry()
            source = "manual"

        return await self._validate_and_save(credential, source)

    # ------------------------------------------------------------------
    # Browser path
    # ------------------------------------------------------------------

    async def _browser_flow(self) -> CallbackResult:
        listener = self._listener_factory()
        try:
            self._interaction.show_auth_url(build_auth_url(self._store.api_url, listener.port))
            handoff = asyncio.wrap_future(listener.start())
            try:
                return await asyncio.wait_for(handoff, timeout=self._callback_timeout)
            except asyncio.TimeoutError:
                raise CallbackTimedOutError(
                    f"No callback received within {self._callback_timeout:g} seconds.",
                ) from None
        finally:
            listener.close()

    # ------------------------------------------------------------------
    # Manual path
    # ------------------------------------------------------------------

    async def _manual_entry(self) -> str:
        entered = await self._interaction.prompt_credential(self._store.api_url)
        credential = (entered or "").strip()
        if not credential:
            raise CredentialInvalidError("No API key provided.")
        return credential

    # ------------------------------------------------------------------
    # Convergence point
    # ------------------------------------------------------------------

    async def _validate_and_save(self, credential: str, source: LoginSource) -> LoginOutcome:
        self._interaction.validating()
        try:
            async with self._api_factory(credential) as api:
                user = await api.whoami()
        except CandleKeepError as exc:
            raise CredentialInvalidError(
                f"Invalid API key: {exc}",
                hint="Create a new key under Settings > API Keys and try again.",
            ) from exc

        self._store.save_api_key(credential)
        logger.info("Stored credential for %s", user.email)
        return LoginOutcome(source=source, user=user)
