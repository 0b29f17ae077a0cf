"""Descriptor document loader.

Reads ``*.yml``/``*.yaml``/``*.json`` descriptor documents and compiled
``FileDescriptorSet`` binaries, and builds a resolved model from them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import yaml

from aiplint.descriptor.builder import DescriptorError, build_model

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from aiplint.descriptor.model import DescriptorModel

logger = logging.getLogger(__name__)

YAML_SUFFIXES = frozenset({".yml", ".yaml"})
JSON_SUFFIXES = frozenset({".json"})
DESCRIPTOR_SET_SUFFIXES = frozenset({".pb", ".binpb", ".desc", ".protoset"})


@dataclass
class ParsedDocuments:
    """Raw descriptor documents read from one or more paths."""

    documents: list[dict[str, Any]] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)


def parse_document_file(path: Path) -> list[dict[str, Any]]:
    """Parse a single YAML or JSON document file.

    A file holds either one file document (a mapping with ``path``) or a
    mapping with a ``files`` list.  An empty file yields no documents.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"{path}: cannot read descriptor document: {exc}"
        raise DescriptorError(msg) from exc
    try:
        data = json.loads(text) if path.suffix in JSON_SUFFIXES else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        msg = f"{path}: cannot parse descriptor document: {exc}"
        raise DescriptorError(msg) from exc

    if data is None:
        return []
    if not isinstance(data, dict):
        msg = f"{path}: top level must be a mapping"
        raise DescriptorError(msg)

    if "files" in data:
        files = data.get("files") or []
        if not isinstance(files, list):
            msg = f"{path}: 'files' must be a list"
            raise DescriptorError(msg)
        for index, entry in enumerate(files):
            if not isinstance(entry, dict):
                msg = f"{path}: files[{index}] must be a mapping, got {type(entry).__name__}"
                raise DescriptorError(msg)
        return [dict(f) for f in files]
    return [data]


def load_documents(paths: Iterable[Path]) -> ParsedDocuments:
    """Collect raw documents from *paths* (files or directories).

    Directories are searched non-recursively for YAML and JSON documents, in
    sorted order so the resulting model is stable.
    """
    result = ParsedDocuments()
    for path in paths:
        if path.is_dir():
            candidates = sorted(
                p for p in path.iterdir() if p.suffix in YAML_SUFFIXES | JSON_SUFFIXES
            )
        else:
            candidates = [path]
        for candidate in candidates:
            docs = parse_document_file(candidate)
            logger.debug("Read %d descriptor document(s) from %s", len(docs), candidate)
            result.documents.extend(docs)
            result.sources.append(str(candidate))
    return result


def load_model(
    paths: Iterable[Path],
    *,
    targets: Iterable[str] | None = None,
) -> DescriptorModel:
    """Load every path and build one model.

    Paths with a descriptor-set suffix are decoded with the protobuf adapter;
    *targets* then selects which of their files are linted.  Everything else
    is read as YAML/JSON documents.
    """
    target_set = set(targets) if targets is not None else None
    documents: list[dict[str, Any]] = []
    plain: list[Path] = []
    for path in paths:
        if path.suffix in DESCRIPTOR_SET_SUFFIXES:
            from aiplint.descriptor.protobuf import read_descriptor_set

            documents.extend(read_descriptor_set(path, targets=target_set))
        else:
            plain.append(path)

    documents.extend(load_documents(plain).documents)
    return build_model(documents)
