# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Request routing across providers."""

from .gateway import PROVIDER_WINDOW_SECONDS, Gateway

__all__ = ["PROVIDER_WINDOW_SECONDS", "Gateway"]
