# arch_provider/model_builder.py

import logging
from typing import Iterable

from arch_provider.data_repository import MODEL_STATES_DATA, DataRepository, ModelStates
from arch_provider.models import ArchitectureComponent, ArchitectureModel, ModelType

logger = logging.getLogger("arch_provider")


class ModelBuilder:
    def __init__(self, repository: DataRepository):
        self.repository = repository

    def build(self, component_names: Iterable[str]) -> ArchitectureModel:
        model = ArchitectureModel(tuple(ArchitectureComponent.from_name(n) for n in component_names))

        # lookup of the registry and the insert form one critical section
        with self.repository.lock:
            model_states = self.repository.get_or_create(MODEL_STATES_DATA, ModelStates)
            model_states.add_model(ModelType.ARCHITECTURE_MODEL.value, model)

        logger.info(f"Registered architecture model with {len(model)} component(s)")
        return model
