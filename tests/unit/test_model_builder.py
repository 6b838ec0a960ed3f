"""
Unit tests for the architecture model, the shared registry and evidence lookup.
"""

import threading
from dataclasses import FrozenInstanceError

import pytest

from arch_provider.data_repository import (
    INPUT_TEXT_DATA,
    MODEL_STATES_DATA,
    ModelStates,
    get_default_repository,
)
from arch_provider.evidence import (
    RepositoryEvidenceProvider,
    StaticEvidenceProvider,
    code_model_from_directory,
    package_paths,
)
from arch_provider.model_builder import ModelBuilder
from arch_provider.models import ArchitectureComponent, CodeModel, CodePackage, ModelType


# ---------------------------------------------------------------------------
# ModelBuilder
# ---------------------------------------------------------------------------

def test_components_carry_identity_only(repository):
    model = ModelBuilder(repository).build(["Auth", "Storage"])
    assert model.component_names() == ["Auth", "Storage"]
    for component in model.components:
        assert component.identifier == component.name
        assert component.kind == "Component"
        assert component.provided_interfaces == ()
        assert component.required_interfaces == ()
        assert component.sub_elements == ()


def test_components_are_immutable():
    component = ArchitectureComponent.from_name("Auth")
    with pytest.raises(FrozenInstanceError):
        component.name = "Other"


def test_registry_created_when_absent(repository):
    model = ModelBuilder(repository).build(["Auth"])
    states = repository.get_data(MODEL_STATES_DATA)
    assert isinstance(states, ModelStates)
    assert states.get_model(ModelType.ARCHITECTURE_MODEL.value) is model


def test_existing_registry_reused_and_other_keys_untouched(repository):
    states = ModelStates()
    code_model = CodeModel()
    states.add_model(ModelType.CODE_MODEL.value, code_model)
    repository.add_data(MODEL_STATES_DATA, states)

    ModelBuilder(repository).build(["Auth"])

    assert repository.get_data(MODEL_STATES_DATA) is states
    assert states.get_model(ModelType.CODE_MODEL.value) is code_model
    assert sorted(states.model_ids()) == sorted([ModelType.CODE_MODEL.value, ModelType.ARCHITECTURE_MODEL.value])


def test_concurrent_builds_share_one_registry(repository):
    barrier = threading.Barrier(8)
    registries = []

    def build(i):
        barrier.wait()
        ModelBuilder(repository).build([f"C{i}"])
        registries.append(repository.get_data(MODEL_STATES_DATA))

    threads = [threading.Thread(target=build, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({id(r) for r in registries}) == 1


def test_default_repository_is_a_singleton():
    assert get_default_repository() is get_default_repository()


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------

def _code_model():
    root = CodePackage("org")
    example = CodePackage("example", parent=root)
    storage = CodePackage("storage", parent=example, content=["Store.java"])
    web = CodePackage("web", parent=example, content=["Controller.java"])
    return CodeModel([root, example, storage, web])


def test_package_paths_walk_parents_and_skip_empty():
    assert package_paths(_code_model()) == ["org.example.storage", "org.example.web"]


def test_repository_evidence(repository):
    repository.add_data(INPUT_TEXT_DATA, "The docs")
    provider = RepositoryEvidenceProvider(repository)
    assert provider.get_input_text() == "The docs"
    assert provider.get_code_packages() is None

    states = repository.get_or_create(MODEL_STATES_DATA, ModelStates)
    states.add_model(ModelType.CODE_MODEL.value, _code_model())
    assert provider.get_code_packages() == ["org.example.storage", "org.example.web"]


def test_static_evidence():
    provider = StaticEvidenceProvider("text", ("a.b", "a.c"))
    assert provider.get_input_text() == "text"
    assert provider.get_code_packages() == ["a.b", "a.c"]
    assert StaticEvidenceProvider().get_code_packages() is None


def test_code_model_from_directory(tmp_path):
    (tmp_path / "shop" / "billing").mkdir(parents=True)
    (tmp_path / "shop" / "catalog").mkdir(parents=True)
    (tmp_path / "shop" / "__pycache__").mkdir(parents=True)
    (tmp_path / "shop" / "billing" / "invoice.py").write_text("")
    (tmp_path / "shop" / "catalog" / "README.md").write_text("")
    (tmp_path / "shop" / "__pycache__" / "x.py").write_text("")

    model = code_model_from_directory(str(tmp_path))

    assert [p.qualified_name() for p in model.get_all_packages()] == ["shop", "shop.billing", "shop.catalog"]
    assert package_paths(model) == ["shop.billing"]


def test_code_model_from_missing_directory(tmp_path):
    with pytest.raises(NotADirectoryError):
        code_model_from_directory(str(tmp_path / "nope"))
