"""Bucketing, detection and table primitives for :mod:`lambda_core`."""

from . import aggregation as _aggregation
from . import bucketing as _bucketing
from . import constants as _constants
from . import detection as _detection
from . import samples as _samples
from . import tables as _tables

from .aggregation import *  # noqa: F401,F403
from .bucketing import *  # noqa: F401,F403
from .constants import *  # noqa: F401,F403
from .detection import *  # noqa: F401,F403
from .samples import *  # noqa: F401,F403
from .tables import *  # noqa: F401,F403

__all__ = list(
    dict.fromkeys(
        [
            *_aggregation.__all__,
            *_bucketing.__all__,
            *_constants.__all__,
            *_detection.__all__,
            *_samples.__all__,
            *_tables.__all__,
        ]
    )
)

del _aggregation
del _bucketing
del _constants
del _detection
del _samples
del _tables
