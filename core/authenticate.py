"""
core/authenticate.py -- The authentication orchestrator.

Pattern: Chain of Responsibility with an explicit outcome protocol. One
Authenticate instance is configured per route (strategy list + options +
optional completion callback) and is called once per request with that
request's RequestContext. Each call is an independent orchestration pass:
the failure accumulator and the per-attempt Outcome objects are created
inside __call__ and never shared between requests.

Per-pass state machine:

    Attempting(i) --fail--> Attempting(i+1) ... --> AllFailed
                  --success--> Succeeded
                  --redirect--> Redirected
                  --pass--> Passed
                  --error--> Errored

Strategies are attempted strictly one at a time; attempt i+1 starts only
after attempt i reported fail.

The pass ends in a core.models.Decision that the framework adapter applies:
CONTINUE, RESPOND (a ready HttpResponse), ERROR, or DELEGATED (the completion
callback was invoked and its return value is in Decision.result).

Completion callback shapes (delegation mode -- no session/redirect side effects):
    success     callback(None, principal, info)
    all failed  callback(None, False, challenges, statuses)  list of strategies given
                callback(None, False, challenge, status)      single strategy given
    error       callback(err)
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from http import HTTPStatus
from typing import Any, Optional

from core.errors import AuthenticationError, ConfigurationError, StrategyReportedError
from core.models import AuthenticateOptions, Decision, Failure, HttpResponse
from core.strategy import Outcome, OutcomeKind, Strategy

logger = logging.getLogger("gatehouse.core.authenticate")

Callback = Callable[..., Any]


def _status_text(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return str(status)


def _redirect(url: str, status: int = 302) -> Decision:
    return Decision.respond(HttpResponse(status, [("Location", url), ("Content-Length", "0")], ""))


class Authenticate:
    """A configured authentication step. Call it with a RequestContext to run one pass.

    `strategies` is a registry name, an inline strategy object, or a list/tuple
    of them. Passing a list switches all-failed callback results to lists,
    even for a single-element list.
    """

    def __init__(
        self,
        authenticator: Any,
        strategies: Any,
        options: Any = None,
        callback: Optional[Callback] = None,
    ) -> None:
        self._authenticator = authenticator
        self._multi = isinstance(strategies, (list, tuple))
        self._refs = list(strategies) if self._multi else [strategies]
        if not self._refs:
            raise ConfigurationError("authenticate() requires at least one strategy")
        self.options = AuthenticateOptions.build(options)
        self.callback = callback

    async def __call__(self, context: Any) -> Decision:
        failures: list[Failure] = []

        for index, ref in enumerate(self._refs):
            try:
                strategy, name = self._resolve(ref)
            except ConfigurationError as exc:
                logger.warning("%s", exc)
                return Decision.fail(exc)

            logger.debug("Attempt %d: strategy %r", index, name)
            outcome = Outcome(name)
            await self._run(strategy, name, context, outcome)
            kind, args = await outcome.wait()

            if kind is OutcomeKind.FAIL:
                failures.append(Failure(*args))
                continue
            if kind is OutcomeKind.SUCCESS:
                return await self._succeeded(context, *args)
            if kind is OutcomeKind.REDIRECT:
                return _redirect(*args)
            if kind is OutcomeKind.PASS:
                return Decision.proceed()
            return await self._errored(args[0])

        return await self._all_failed(context, failures)

    # ------------------------------------------------------------------
    # Attempt plumbing
    # ------------------------------------------------------------------

    def _resolve(self, ref: Any) -> tuple[Strategy, Optional[str]]:
        if isinstance(ref, str):
            strategy = self._authenticator.registry.lookup(ref)
            if strategy is None:
                raise ConfigurationError(f'Unknown authentication strategy "{ref}"')
            return strategy, ref
        if isinstance(ref, Strategy):
            return ref, getattr(ref, "name", None)
        raise ConfigurationError(f"Not an authentication strategy or strategy name: {ref!r}")

    async def _run(self, strategy: Strategy, name: Optional[str], context: Any, outcome: Outcome) -> None:
        try:
            result = strategy.authenticate(context, self.options, outcome)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            if outcome.reported:
                logger.warning("Strategy %r raised after reporting an outcome", name, exc_info=True)
                return
            error = StrategyReportedError(f'Authentication strategy "{name}" raised: {exc}', strategy=name)
            error.__cause__ = exc
            outcome.error(error)

    async def _delegate(self, *args: Any) -> Decision:
        result = self.callback(*args)
        if inspect.isawaitable(result):
            result = await result
        return Decision.delegated(result)

    # ------------------------------------------------------------------
    # Terminal outcomes
    # ------------------------------------------------------------------

    async def _succeeded(self, context: Any, principal: Any, info: Any) -> Decision:
        if self.callback is not None:
            return await self._delegate(None, principal, info)

        options = self.options
        info = {} if info is None else info
        try:
            if options.assign_property:
                context.properties[options.assign_property] = principal
                if options.auth_info:
                    context.auth_info = await self._authenticator.transform(info, context)
                return Decision.proceed()

            if options.success_flash:
                self._flash(context, options.success_flash, info, "success")
            if options.success_message:
                self._message(context, options.success_message, info)

            await context.login(principal, options)

            if options.auth_info:
                context.auth_info = await self._authenticator.transform(info, context)
        except Exception as exc:
            logger.debug("Post-success step failed: %s", exc)
            return Decision.fail(exc)

        if options.success_return_to_or_redirect:
            url = options.success_return_to_or_redirect
            session = context.session
            if session is not None and session.get("returnTo"):
                url = session.pop("returnTo")
            return _redirect(url)
        if options.success_redirect:
            return _redirect(options.success_redirect)
        return Decision.proceed()

    async def _errored(self, err: BaseException) -> Decision:
        if self.callback is not None:
            return await self._delegate(err)
        return Decision.fail(err)

    async def _all_failed(self, context: Any, failures: list[Failure]) -> Decision:
        if self.callback is not None:
            if self._multi:
                return await self._delegate(
                    None, False, [f.challenge for f in failures], [f.status for f in failures]
                )
            return await self._delegate(None, False, failures[0].challenge, failures[0].status)

        options = self.options
        challenge = failures[0].challenge if failures and failures[0].challenge is not None else {}
        try:
            if options.failure_flash:
                self._flash(context, options.failure_flash, challenge, "error")
            if options.failure_message:
                self._message(context, options.failure_message, challenge)
        except Exception as exc:
            return Decision.fail(exc)

        if options.failure_redirect:
            return _redirect(options.failure_redirect)

        status = next((f.status for f in failures if f.status is not None), None)
        effective = status if status is not None else 401
        challenges = [f.challenge for f in failures if isinstance(f.challenge, str)] if effective == 401 else []
        text = _status_text(effective)

        if options.fail_with_error:
            return Decision.fail(AuthenticationError(text, effective, challenges))

        headers = [("WWW-Authenticate", c) for c in challenges]
        return Decision.respond(HttpResponse(effective, headers, text))

    # ------------------------------------------------------------------
    # Flash / session-message side effects
    # ------------------------------------------------------------------

    @staticmethod
    def _flash(context: Any, setting: Any, source: Any, default_type: str) -> None:
        if isinstance(setting, str):
            flash = {"type": default_type, "message": setting}
        elif isinstance(setting, Mapping):
            flash = dict(setting)
        else:
            flash = {"type": source.get("type") if isinstance(source, Mapping) else None}

        kind = flash.get("type") or default_type
        message = flash.get("message")
        if message is None and isinstance(source, Mapping):
            message = source.get("message")
        if message is None:
            message = source
        if isinstance(message, str):
            context.flash(kind, message)

    @staticmethod
    def _message(context: Any, setting: Any, source: Any) -> None:
        message = setting
        if setting is True:
            message = source.get("message") if isinstance(source, Mapping) else None
            if message is None:
                message = source
        if isinstance(message, str):
            context.push_message(message)
