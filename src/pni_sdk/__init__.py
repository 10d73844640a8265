"""Host-side driver for PNI compass and AHRS modules."""

__version__ = "0.1.0"

from pni_sdk.device import Device  # noqa: E402

__all__ = ["Device", "__version__"]
