"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import httpx

from mf_engine.config import _get_float_env, _get_int_env

logger = logging.getLogger(__name__)


@dataclass
class ProviderFetchError(RuntimeError):
    reason: str
    attempts: int
    status_code: Optional[int] = None

    def __str__(self) -> str:
        parts = [self.reason, f"attempts={self.attempts}"]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        return "ProviderFetchError(" + ", ".join(parts) + ")"


def _provider_env_name(base: str, provider_id: Optional[str]) -> str:
    if not provider_id:
        return base
    suffix = "".join(ch if ch.isalnum() else "_" for ch in provider_id.upper())
    return f"{base}_{suffix}"


def _get_float_env_for_provider(base: str, provider_id: Optional[str], default: float) -> float:
    return _get_float_env(_provider_env_name(base, provider_id), _get_float_env(base, default))


def _get_int_env_for_provider(base: str, provider_id: Optional[str], default: int) -> int:
    return _get_int_env(_provider_env_name(base, provider_id), _get_int_env(base, default))


def _classify_status(status: int) -> str:
    if status in (401, 403):
        return "auth_error"
    if status in (404, 410):
        return "unavailable"
    if status == 429:
        return "rate_limited"
    if status in (408, 504):
        return "timeout"
    if status in (400, 422):
        return "invalid_request"
    return "network_error"


def _should_retry(reason: str, status: Optional[int]) -> bool:
    if reason in {"auth_error", "unavailable", "invalid_request", "invalid_response", "circuit_breaker"}:
        return False
    if reason in {"network_error", "timeout", "rate_limited"}:
        return True
    if status is not None and 500 <= status <= 599:
        return True
    return False


def classify_failure_type(reason: Optional[str]) -> Optional[str]:
    if not reason:
        return None
    if reason in {"network_error", "timeout", "rate_limited"}:
        return "transient_error"
    if reason in {"auth_error", "unavailable", "circuit_breaker"}:
        return "unavailable"
    if reason in {"invalid_request", "invalid_response"}:
        return "invalid_response"
    return "transient_error"


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    backoff_base_s: float = 0.5
    backoff_max_s: float = 3.0
    jitter_s: float = 0.0

    @classmethod
    def from_env(cls, provider_id: Optional[str] = None) -> "RetryPolicy":
        return cls(
            max_attempts=max(1, _get_int_env_for_provider("MATCHFEED_PROVIDER_MAX_ATTEMPTS", provider_id, 3)),
            backoff_base_s=_get_float_env_for_provider("MATCHFEED_PROVIDER_BACKOFF_BASE", provider_id, 0.5),
            backoff_max_s=_get_float_env_for_provider("MATCHFEED_PROVIDER_BACKOFF_MAX", provider_id, 3.0),
            jitter_s=_get_float_env_for_provider("MATCHFEED_PROVIDER_BACKOFF_JITTER_S", provider_id, 0.0),
        )

    def delay_for(self, attempt: int) -> float:
        delay = min(self.backoff_max_s, self.backoff_base_s * (2 ** (attempt - 1)))
        if self.jitter_s > 0:
            delay += random.uniform(0.0, self.jitter_s)
        return max(0.0, delay)


@dataclass
class ProviderCircuit:
    """Consecutive-failure circuit breaker for one upstream provider.

    Only transient failures count toward the threshold. While open, calls fail
    fast with ``circuit_breaker`` until ``cooldown_s`` has elapsed.
    """

    provider_id: str
    threshold: int = 3
    cooldown_s: float = 300.0
    clock: Callable[[], float] = time.monotonic
    failures: int = field(default=0, init=False)
    open_until: Optional[float] = field(default=None, init=False)

    @classmethod
    def from_env(cls, provider_id: str) -> "ProviderCircuit":
        return cls(
            provider_id=provider_id,
            threshold=_get_int_env_for_provider("MATCHFEED_PROVIDER_MAX_CONSEC_FAILS", provider_id, 3),
            cooldown_s=_get_float_env_for_provider("MATCHFEED_PROVIDER_COOLDOWN_S", provider_id, 300.0),
        )

    def check(self) -> None:
        if self.threshold <= 0 or self.open_until is None:
            return
        if self.clock() < self.open_until:
            raise ProviderFetchError("circuit_breaker", attempts=0)
        self.open_until = None
        self.failures = 0

    def record_failure(self, reason: str) -> None:
        if self.threshold <= 0:
            return
        if reason not in {"network_error", "timeout", "rate_limited"}:
            return
        self.failures += 1
        if self.failures >= self.threshold:
            if self.cooldown_s > 0:
                self.open_until = self.clock() + self.cooldown_s
            logger.warning(
                "[provider_retry][circuit_breaker] provider=%s failures=%s cooldown_s=%.3f",
                self.provider_id,
                self.failures,
                self.cooldown_s,
            )

    def record_success(self) -> None:
        self.failures = 0
        self.open_until = None

    @property
    def is_open(self) -> bool:
        return self.open_until is not None and self.clock() < self.open_until


async def _sleep_backoff(
    *,
    provider_id: Optional[str],
    attempt: int,
    policy: RetryPolicy,
    reason: str,
    status: Optional[int],
) -> None:
    delay = policy.delay_for(attempt)
    logger.info(
        "[provider_retry][backoff] provider=%s attempt=%s sleep_s=%.3f reason=%s status=%s",
        provider_id,
        attempt,
        delay,
        reason,
        status,
    )
    await asyncio.sleep(delay)


async def post_json_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    payload: Optional[Dict[str, Any]] = None,
    timeout_s: float = 20.0,
    policy: Optional[RetryPolicy] = None,
    circuit: Optional[ProviderCircuit] = None,
    provider_id: Optional[str] = None,
) -> Dict[str, Any]:
    """POST ``payload`` as JSON and return the decoded object body.

    Raises ProviderFetchError on any failure. ``asyncio.CancelledError`` is
    never caught, so callers can abort an in-flight request.
    """
    if circuit is not None:
        circuit.check()
    retry = policy or RetryPolicy.from_env(provider_id)
    attempts = max(1, retry.max_attempts)
    last_reason = "network_error"
    last_status: Optional[int] = None

    for attempt in range(1, attempts + 1):
        try:
            resp = await client.post(url, headers=headers or {}, json=payload or {}, timeout=timeout_s)
            last_status = resp.status_code
            if resp.status_code != 200:
                last_reason = _classify_status(resp.status_code)
                if attempt < attempts and _should_retry(last_reason, resp.status_code):
                    await _sleep_backoff(
                        provider_id=provider_id,
                        attempt=attempt,
                        policy=retry,
                        reason=last_reason,
                        status=last_status,
                    )
                    continue
                if circuit is not None:
                    circuit.record_failure(last_reason)
                raise ProviderFetchError(last_reason, attempt, resp.status_code)
            try:
                data = resp.json()
            except ValueError as exc:
                last_reason = "invalid_response"
                if circuit is not None:
                    circuit.record_failure(last_reason)
                raise ProviderFetchError(last_reason, attempt, resp.status_code) from exc
            if not isinstance(data, dict):
                last_reason = "invalid_response"
                if circuit is not None:
                    circuit.record_failure(last_reason)
                raise ProviderFetchError(last_reason, attempt, resp.status_code)
            if circuit is not None:
                circuit.record_success()
            return data
        except httpx.TimeoutException:
            last_reason = "timeout"
        except httpx.HTTPError:
            last_reason = "network_error"

        if attempt < attempts and _should_retry(last_reason, last_status):
            await _sleep_backoff(
                provider_id=provider_id,
                attempt=attempt,
                policy=retry,
                reason=last_reason,
                status=last_status,
            )
            continue
        if circuit is not None:
            circuit.record_failure(last_reason)
        raise ProviderFetchError(last_reason, attempt, last_status)

    if circuit is not None:
        circuit.record_failure(last_reason)
    raise ProviderFetchError(last_reason, attempts, last_status)


__all__ = [
    "ProviderCircuit",
    "ProviderFetchError",
    "RetryPolicy",
    "classify_failure_type",
    "post_json_with_retry",
]
