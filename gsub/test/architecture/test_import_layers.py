from __future__ import annotations

import pytest

from ._gate import require_arch_checks_enabled
from ._utils import gsub_root, iter_python_files, matches_prefix, parse_imports

# package -> modules it must never import
_FORBIDDEN = {
    "core": ("gsub.git", "gsub.parse", "gsub.engine", "gsub.services", "gsub.output", "gsub.cli"),
    "platform": ("gsub.git", "gsub.engine", "gsub.services", "gsub.output", "gsub.cli"),
    "parse": ("gsub.engine", "gsub.services", "gsub.output", "gsub.cli", "gsub.platform"),
    "engine": ("gsub.services", "gsub.output", "gsub.cli", "gsub.platform"),
    "git": ("gsub.parse", "gsub.engine", "gsub.services", "gsub.output", "gsub.cli"),
    "services": ("gsub.cli",),
    "output": ("gsub.services", "gsub.cli"),
}


@pytest.mark.parametrize("package", sorted(_FORBIDDEN))
def test_layer_does_not_reach_upward(package: str) -> None:
    require_arch_checks_enabled()

    root = gsub_root()
    offenders: list[str] = []
    for file_path in iter_python_files(root / package):
        rel = file_path.relative_to(root).as_posix()
        for item in parse_imports(file_path):
            for forbidden in _FORBIDDEN[package]:
                if matches_prefix(item.module, forbidden):
                    offenders.append(f"{rel}:{item.line}: forbidden import '{item.module}'")

    assert not offenders, f"{package} layering violations:\n" + "\n".join(offenders)
