"""File rules."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from aiplint.descriptor.model import NodeKind
from aiplint.findings import Severity
from aiplint.rules.base import Rule

if TYPE_CHECKING:
    from collections.abc import Iterator

    from aiplint.descriptor.model import File
    from aiplint.findings import Finding
    from aiplint.rules.base import CheckContext

_VERSION_RE = re.compile(r"^v\d+((alpha|beta)\d*)?(p\d+(alpha|beta)\d*)?$")


def _check_package(file: File, ctx: CheckContext) -> Iterator[Finding]:
    if not file.package:
        yield ctx.finding(file, f"File '{file.path}' must declare a package.")
        return
    last = file.package.rpartition(".")[2]
    if not _VERSION_RE.match(last):
        yield ctx.finding(
            file,
            f"Package '{file.package}' should end with a version component such as 'v1'.",
            suggestion=f"{file.package}.v1",
            severity=Severity.WARNING,
        )


RULES: tuple[Rule, ...] = (
    Rule(
        id="core::0191::file-package",
        summary="Files declare a versioned package.",
        kinds=frozenset({NodeKind.FILE}),
        check=_check_package,
    ),
)
