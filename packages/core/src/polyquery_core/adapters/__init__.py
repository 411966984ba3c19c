from .caching import CachingAdapter

__all__ = ["CachingAdapter"]
