"""SimAction - simulator and device fleet actions over xcrun."""

from SimAction.version import APP_VERSION

__version__ = APP_VERSION
