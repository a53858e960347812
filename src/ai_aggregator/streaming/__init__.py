# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Streaming support: raw upstream byte streams and their bookkeeping.
"""

from .context import StreamContext
from .stream import CloseCallback, ProviderStream

__all__ = ["CloseCallback", "ProviderStream", "StreamContext"]
