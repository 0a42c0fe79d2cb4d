"""
Detection — read-only probes and pure classifiers.

Re-exports so callers can import from the package::

    from slackops.core.detection import classify_environment, detect_risk
"""

from slackops.core.detection.environment import classify_environment  # noqa: F401
from slackops.core.detection.risk import (  # noqa: F401
    KERNEL_PACKAGE_PATTERNS,
    detect_risk,
    matched_risk_markers,
)
from slackops.core.detection.system import (  # noqa: F401
    SlackwareRelease,
    detect_release,
    is_root,
)
