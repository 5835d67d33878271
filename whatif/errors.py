"""Exception types raised by the whatif package."""

from __future__ import annotations


class WhatIfError(Exception):
    """Base class for all whatif errors."""


class FilterValidationError(WhatIfError, ValueError):
    """A partial filter update named an unknown field or carried a bad value."""


class RuleLoadError(WhatIfError):
    """A rule table file could not be read or is malformed."""
