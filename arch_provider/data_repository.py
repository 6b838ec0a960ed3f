# arch_provider/data_repository.py

import threading
from typing import Any, Callable, Dict, List, Optional, TypeVar

T = TypeVar("T")

MODEL_STATES_DATA = "ModelStatesData"
INPUT_TEXT_DATA = "InputTextData"


class ModelStates:
    """
    Model-type key -> model instance. Shared by every step of a run.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._models: Dict[str, Any] = {}

    def get_model(self, model_id: str) -> Optional[Any]:
        with self._lock:
            return self._models.get(str(model_id))

    def add_model(self, model_id: str, model: Any) -> None:
        with self._lock:
            self._models[str(model_id)] = model

    def model_ids(self) -> List[str]:
        with self._lock:
            return list(self._models)


class DataRepository:
    """
    Process-local, thread-safe store of named data shared between pipeline steps.

    `lock` is re-entrant so a caller can hold it across a lookup and an insert
    while still going through the regular accessors.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._data: Dict[str, Any] = {}

    def get_data(self, name: str) -> Optional[Any]:
        with self.lock:
            return self._data.get(name)

    def add_data(self, name: str, data: Any) -> None:
        with self.lock:
            self._data[name] = data

    def get_or_create(self, name: str, factory: Callable[[], T]) -> T:
        with self.lock:
            existing = self._data.get(name)
            if existing is None:
                existing = factory()
                self._data[name] = existing
            return existing

    def get_model_states(self) -> Optional[ModelStates]:
        return self.get_data(MODEL_STATES_DATA)


_default_repository: Optional[DataRepository] = None
_default_repository_lock = threading.Lock()


def get_default_repository() -> DataRepository:
    global _default_repository
    with _default_repository_lock:
        if _default_repository is None:
            _default_repository = DataRepository()
        return _default_repository
