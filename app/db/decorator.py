from typing import Any, Callable, Dict, Type, TypeVar

T = TypeVar("T")

repository_registry: Dict[Type[Any], Type[Any]] = {}


def repository(model_class: Type[Any]) -> Callable[[Type[T]], Type[T]]:
    """
    Registers the decorated class as the repository for the given entity.
    """

    def decorator(repo_class: Type[T]) -> Type[T]:
        repository_registry[model_class] = repo_class
        return repo_class

    return decorator
