from .coordinate_search import SearchCoordinator

__all__ = ["SearchCoordinator"]
