from .exclusive_lease import CANCEL_SCRIPT, ExclusiveLease

__all__ = ["CANCEL_SCRIPT", "ExclusiveLease"]
