# arch_provider/evidence.py

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from arch_provider.data_repository import INPUT_TEXT_DATA, DataRepository
from arch_provider.models import CodeModel, CodePackage, ModelType

logger = logging.getLogger("arch_provider")

SOURCE_SUFFIXES = (
    ".py", ".java", ".kt", ".scala", ".go", ".rs", ".c", ".cc", ".cpp", ".h", ".hpp",
    ".cs", ".js", ".jsx", ".ts", ".tsx", ".rb", ".php", ".swift",
)
_SKIPPED_DIRS = {"__pycache__", "node_modules", "build", "dist", "target", "venv"}


class EvidenceProvider(Protocol):
    def get_input_text(self) -> Optional[str]:
        ...

    def get_code_packages(self) -> Optional[List[str]]:
        ...


def package_paths(code_model: CodeModel) -> List[str]:
    """
    Dot-joined, root-to-leaf names of every package that holds content.
    """
    return [p.qualified_name() for p in code_model.get_all_packages() if p.content]


class RepositoryEvidenceProvider:
    """
    Reads the evidence produced by earlier steps from the shared DataRepository.
    """

    def __init__(self, repository: DataRepository):
        self.repository = repository

    def get_input_text(self) -> Optional[str]:
        return self.repository.get_data(INPUT_TEXT_DATA)

    def get_code_packages(self) -> Optional[List[str]]:
        model_states = self.repository.get_model_states()
        code_model = model_states.get_model(ModelType.CODE_MODEL.value) if model_states else None
        if code_model is None:
            return None
        return package_paths(code_model)


class StaticEvidenceProvider:
    def __init__(self, input_text: Optional[str] = None, code_packages: Optional[Iterable[str]] = None):
        self.input_text = input_text
        self.code_packages = list(code_packages) if code_packages is not None else None

    def get_input_text(self) -> Optional[str]:
        return self.input_text

    def get_code_packages(self) -> Optional[List[str]]:
        return self.code_packages


def code_model_from_directory(root: str, suffixes: Iterable[str] = SOURCE_SUFFIXES) -> CodeModel:
    """
    Build a CodeModel from a source tree: every directory below `root` is a
    package, its source files are the package content.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise NotADirectoryError(f"Source root '{root}' is not a directory")

    suffixes = tuple(s.lower() for s in suffixes)
    by_path: Dict[Path, CodePackage] = {}
    packages: List[CodePackage] = []

    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith(".") and d not in _SKIPPED_DIRS)
        current = Path(dirpath)
        if current == root_path:
            continue
        package = CodePackage(
            name=current.name,
            parent=by_path.get(current.parent),
            content=sorted(f for f in filenames if f.lower().endswith(suffixes)),
        )
        by_path[current] = package
        packages.append(package)

    logger.debug(f"Read {len(packages)} package(s) from {root_path}")
    return CodeModel(packages)
