from .redact import redact, truncate_src

__all__ = [
    "redact",
    "truncate_src",
]
