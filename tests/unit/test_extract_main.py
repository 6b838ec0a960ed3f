"""
Unit tests for the command line entry point.
"""

import pytest

import extract_main
from arch_provider.data_repository import INPUT_TEXT_DATA, MODEL_STATES_DATA
from arch_provider.evidence import package_paths
from arch_provider.models import ModelType

from conftest import CODE_MARKER, DOC_MARKER, ScriptedChatModel


@pytest.fixture
def scripted_llm(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.delenv("ARCH_PROVIDER_CONFIG", raising=False)
    monkeypatch.delenv("ARCH_LLM_MODEL", raising=False)
    model = ScriptedChatModel({
        DOC_MARKER: ["elaboration", "- Frontend Component\n- Billing"],
        CODE_MARKER: ["summary", "- Billing\n- Indexer"],
    })
    monkeypatch.setattr("arch_provider.architecture_provider.build_chat_llm", lambda settings: model)
    return model


def test_code_model_from_listing(tmp_path):
    listing = tmp_path / "packages.txt"
    listing.write_text("# packages\norg.shop.billing\n\norg.shop.catalog\n", encoding="utf-8")

    model = extract_main.code_model_from_listing(listing)

    assert [p.qualified_name() for p in model.get_all_packages()] == [
        "org", "org.shop", "org.shop.billing", "org.shop.catalog",
    ]
    assert package_paths(model) == ["org.shop.billing", "org.shop.catalog"]


def test_build_repository(tmp_path):
    docs = tmp_path / "docs.txt"
    docs.write_text("The docs", encoding="utf-8")
    listing = tmp_path / "packages.txt"
    listing.write_text("org.shop\n", encoding="utf-8")

    repository = extract_main.build_repository(docs, listing)

    assert repository.get_data(INPUT_TEXT_DATA) == "The docs"
    code_model = repository.get_data(MODEL_STATES_DATA).get_model(ModelType.CODE_MODEL.value)
    assert package_paths(code_model) == ["org.shop"]


def test_nothing_to_do():
    assert extract_main.main([]) == 2


def test_documentation_only_run(tmp_path, capsys, scripted_llm):
    docs = tmp_path / "docs.txt"
    docs.write_text("The docs", encoding="utf-8")

    assert extract_main.main(["--documentation", str(docs)]) == 0

    assert capsys.readouterr().out.splitlines() == ["Billing", "Frontend"]
    assert scripted_llm.calls_for(CODE_MARKER) == []


def test_both_sources_with_similarity(tmp_path, capsys, scripted_llm):
    docs = tmp_path / "docs.txt"
    docs.write_text("The docs", encoding="utf-8")
    listing = tmp_path / "packages.txt"
    listing.write_text("org.shop.billing\norg.shop.search\n", encoding="utf-8")

    code = extract_main.main(["--documentation", str(docs), "--code", str(listing), "--no-aggregation-prompt"])

    assert code == 0
    assert capsys.readouterr().out.splitlines() == ["Billing", "Frontend", "Indexer"]


def test_strict_aggregation_is_a_configuration_error(tmp_path, scripted_llm):
    docs = tmp_path / "docs.txt"
    docs.write_text("The docs", encoding="utf-8")
    listing = tmp_path / "packages.txt"
    listing.write_text("org.shop\n", encoding="utf-8")

    code = extract_main.main([
        "--documentation", str(docs), "--code", str(listing), "--no-aggregation-prompt", "--strict-aggregation",
    ])

    assert code == 2
    assert scripted_llm.calls == []


def test_unknown_model_suffix_exits_with_configuration_error(tmp_path, scripted_llm):
    docs = tmp_path / "docs.txt"
    docs.write_text("The docs", encoding="utf-8")

    assert extract_main.main(["--documentation", str(docs), "--model", "gpt-5.1_turbo"]) == 2
    assert extract_main.main(["--documentation", str(docs), "--model", "GENERIC"]) == 2
    assert scripted_llm.calls == []
