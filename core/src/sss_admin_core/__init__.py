from sss_admin_core.config import AdminConfig, load_admin_config
from sss_admin_core.home import AdminPaths, ensure_admin_layout, resolve_admin_home
from sss_admin_core.session import Identity, SessionToken, SessionTokenCodec

__version__ = "0.1.0"

__all__ = [
    "AdminConfig",
    "AdminPaths",
    "Identity",
    "SessionToken",
    "SessionTokenCodec",
    "__version__",
    "ensure_admin_layout",
    "load_admin_config",
    "resolve_admin_home",
]
