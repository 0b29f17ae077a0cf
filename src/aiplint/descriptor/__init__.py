"""Descriptor domain: immutable API model, builder, document loaders."""

from aiplint.descriptor.builder import DescriptorError, ResolutionError, build_model
from aiplint.descriptor.loader import load_documents, load_model, parse_document_file
from aiplint.descriptor.model import (
    DescriptorModel,
    EnumType,
    Field,
    FieldType,
    File,
    HttpRule,
    Message,
    Method,
    Node,
    NodeKind,
    ResourceDescriptor,
    ResourceReference,
    Service,
    SourceLocation,
)

__all__ = [
    "DescriptorError",
    "DescriptorModel",
    "EnumType",
    "Field",
    "FieldType",
    "File",
    "HttpRule",
    "Message",
    "Method",
    "Node",
    "NodeKind",
    "ResolutionError",
    "ResourceDescriptor",
    "ResourceReference",
    "Service",
    "SourceLocation",
    "build_model",
    "load_documents",
    "load_model",
    "parse_document_file",
]
