# arch_provider/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class ModelType(str, Enum):
    ARCHITECTURE_MODEL = "ArchitectureModel"
    CODE_MODEL = "CodeModel"


COMPONENT_KIND = "Component"


@dataclass(frozen=True)
class ArchitectureComponent:
    identifier: str
    name: str
    provided_interfaces: Tuple[str, ...] = ()
    required_interfaces: Tuple[str, ...] = ()
    sub_elements: Tuple["ArchitectureComponent", ...] = ()
    kind: str = COMPONENT_KIND

    @classmethod
    def from_name(cls, name: str) -> "ArchitectureComponent":
        return cls(identifier=name, name=name)


@dataclass(frozen=True)
class ArchitectureModel:
    components: Tuple[ArchitectureComponent, ...] = ()

    def component_names(self) -> List[str]:
        return [c.name for c in self.components]

    def __len__(self) -> int:
        return len(self.components)


@dataclass(eq=False)
class CodePackage:
    """
    One package of the code model. `content` holds the compilation units
    (file names) directly inside the package; sub-packages link back via parent.
    """

    name: str
    parent: Optional["CodePackage"] = None
    content: List[str] = field(default_factory=list)

    def qualified_name(self) -> str:
        names = []
        node: Optional[CodePackage] = self
        while node is not None:
            names.append(node.name)
            node = node.parent
        return ".".join(reversed(names))


@dataclass
class CodeModel:
    packages: List[CodePackage] = field(default_factory=list)

    def get_all_packages(self) -> List[CodePackage]:
        return list(self.packages)
