"""Cross-session statistics and table validation for :mod:`lambda_core`."""

from . import cross_session as _cross_session
from . import validation as _validation

from .cross_session import *  # noqa: F401,F403
from .validation import *  # noqa: F401,F403

__all__ = list(dict.fromkeys([*_cross_session.__all__, *_validation.__all__]))

del _cross_session
del _validation
