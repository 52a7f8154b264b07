from typing import Any, Callable, Dict, Type, TypeVar

from nlcore_fhir.db.entities.base import Base

T = TypeVar("T")

repository_registry: Dict[Type[Base], Type[Any]] = {}


def repository(model_class: Type[Base]) -> Callable[[Type[T]], Type[T]]:
    """
    Registers a repository class for the given entity so a DbSession can
    hand out the right repository for a model.
    """

    def decorator(repo_class: Type[T]) -> Type[T]:
        repository_registry[model_class] = repo_class
        return repo_class

    return decorator
