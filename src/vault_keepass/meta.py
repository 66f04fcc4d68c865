"""Package metadata for vault-keepass."""

__app_name__ = "vault-keepass"
__version__ = "1.2.0"
__description__ = "Resolve ansible-vault passwords from KeePassXC databases."
__author__ = "KaminoU"
__license_type__ = "MIT"

__all__ = [
    "__app_name__",
    "__author__",
    "__description__",
    "__license_type__",
    "__version__",
]
