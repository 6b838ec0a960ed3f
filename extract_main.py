import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

from arch_provider.architecture_provider import ArchitectureProvider
from arch_provider.cancellation import CancellationToken, OperationCancelledError
from arch_provider.data_repository import INPUT_TEXT_DATA, MODEL_STATES_DATA, DataRepository, ModelStates
from arch_provider.evidence import code_model_from_directory
from arch_provider.models import CodeModel, CodePackage, ModelType
from arch_provider.settings import ConfigurationError, load_provider_settings


logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s | %(levelname)s | %(name)s\n%(message)s\n",
)
logger = logging.getLogger("arch_provider")


def code_model_from_listing(path: Path) -> CodeModel:
    """
    One dot-joined package path per line, e.g. 'org.example.storage'.
    Every listed package counts as non-empty.
    """
    by_name = {}
    packages: List[CodePackage] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        qualified = line.strip()
        if not qualified or qualified.startswith("#"):
            continue
        parent = None
        parts = qualified.split(".")
        for idx, part in enumerate(parts):
            key = ".".join(parts[: idx + 1])
            pkg = by_name.get(key)
            if pkg is None:
                pkg = CodePackage(name=part, parent=parent)
                by_name[key] = pkg
                packages.append(pkg)
            parent = pkg
        parent.content.append(qualified)
    return CodeModel(packages)


def build_repository(documentation: Optional[Path], code: Optional[Path]) -> DataRepository:
    repository = DataRepository()
    if documentation is not None:
        repository.add_data(INPUT_TEXT_DATA, documentation.read_text(encoding="utf-8"))
    if code is not None:
        code_model = code_model_from_directory(str(code)) if code.is_dir() else code_model_from_listing(code)
        model_states = repository.get_or_create(MODEL_STATES_DATA, ModelStates)
        model_states.add_model(ModelType.CODE_MODEL.value, code_model)
    return repository


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract architecture component names with an LLM")
    parser.add_argument("--documentation", type=Path, help="Architecture documentation text file")
    parser.add_argument("--code", type=Path, help="Source root directory or a file listing one package per line")
    parser.add_argument("--config", help="Provider config file (JSON with comments or YAML)")
    parser.add_argument("--model", help="Catalog key or raw model name, e.g. GPT_4O or gpt-4o-mini")
    parser.add_argument("--no-aggregation-prompt", action="store_true", help="Aggregate by similarity instead of asking the model")
    parser.add_argument("--strict-aggregation", action="store_true", help="Fail if both sources are used without an aggregation prompt")
    parser.add_argument("--timeout", type=float, help="Overall timeout in seconds for the model round-trips")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.documentation is None and args.code is None:
        logger.error("Nothing to do: pass --documentation and/or --code")
        return 2

    # a source that was not passed must not be queried
    overrides = {}
    if args.documentation is None:
        overrides["documentation_prompt"] = None
    if args.code is None:
        overrides["code_prompt"] = None
    if args.model:
        overrides["model"] = args.model
    if args.no_aggregation_prompt:
        overrides["aggregation_prompt"] = None
    if args.strict_aggregation:
        overrides["strict_aggregation"] = True

    try:
        settings = load_provider_settings(args.config, **overrides).bounded_by(args.timeout)
        repository = build_repository(args.documentation, args.code)
        provider = ArchitectureProvider.from_settings(settings, repository=repository)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    try:
        model = asyncio.run(provider.arun(CancellationToken(args.timeout)))
    except OperationCancelledError as e:
        logger.error(str(e))
        return 1

    for name in model.component_names():
        print(name)
    return 0


if __name__ == "__main__":
    sys.exit(main())
