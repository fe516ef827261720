"""HTTP surface consumed by the telephony layer."""

from frontline.api.app import create_app

__all__ = ["create_app"]
