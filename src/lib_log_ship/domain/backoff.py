"""Exponential backoff with Gaussian jitter for delivery retries.

Purpose
-------
Spread retries of many independent clients over time while keeping the
expected delay on the nominal exponential curve.

Contents
--------
* :data:`BACKOFF_CAP_FACTOR` - upper bound on the nominal delay, in multiples
  of the base retry interval.
* :func:`jitter` - Gaussian perturbation scaled to a quarter of the delay.
* :func:`nominal_backoff` - the capped exponential curve without noise.
* :func:`exponential_backoff` - the delay actually slept before retry ``n``.
"""

from __future__ import annotations

import random

BACKOFF_CAP_FACTOR = 100


def jitter(delay: float, *, rng: random.Random | None = None) -> float:
    """Return ``delay`` perturbed by ``N(0, 1) * delay / 4``, floored at zero.

    >>> jitter(0.0)
    0.0
    >>> jitter(1.0, rng=random.Random(7)) >= 0
    True
    """

    noise = (rng or random).gauss(0.0, 1.0) * delay / 4.0
    return max(delay + noise, 0.0)


def nominal_backoff(retry_interval: float, n_try: int) -> float:
    """Return ``min(retry_interval * 100, retry_interval * 2 ** (n_try - 1))``.

    >>> [nominal_backoff(1.0, n) for n in range(1, 5)]
    [1.0, 2.0, 4.0, 8.0]
    >>> nominal_backoff(1.0, 50)
    100.0
    >>> nominal_backoff(1.0, 0)
    0.5
    """

    cap = retry_interval * BACKOFF_CAP_FACTOR
    if n_try > 64:
        # 2 ** 63 is far past the cap; larger exponents only risk float overflow.
        return float(cap)
    return float(min(cap, retry_interval * 2.0 ** (n_try - 1)))


def exponential_backoff(retry_interval: float, n_try: int, *, rng: random.Random | None = None) -> float:
    """Return the jittered delay (seconds) to sleep before retry ``n_try``."""

    return jitter(nominal_backoff(retry_interval, n_try), rng=rng)


__all__ = ["BACKOFF_CAP_FACTOR", "exponential_backoff", "jitter", "nominal_backoff"]
