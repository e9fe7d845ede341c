"""JSON Patch adapter used to mutate node payloads in place."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any, Literal

import jsonpatch
import jsonpointer
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from graph.errors import PatchApplyError


class PatchOperation(BaseModel):
    """One RFC 6902 operation."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    op: Literal["add", "remove", "replace", "move", "copy", "test"]
    path: str
    value: Any = None
    from_: str | None = Field(default=None, alias="from")

    @field_validator("path", "from_")
    @classmethod
    def _check_pointer(cls, pointer: str | None) -> str | None:
        if pointer is not None and pointer != "" and not pointer.startswith("/"):
            raise ValueError(f"Not a JSON pointer: {pointer!r}")
        return pointer

    @model_validator(mode="after")
    def _check_operands(self) -> PatchOperation:
        if self.op in {"add", "replace", "test"} and "value" not in self.model_fields_set:
            raise ValueError(f"'{self.op}' operation requires 'value': {self.path}")
        if self.op in {"move", "copy"} and self.from_ is None:
            raise ValueError(f"'{self.op}' operation requires 'from': {self.path}")
        return self

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"op": self.op, "path": self.path}
        if "value" in self.model_fields_set:
            data["value"] = self.value
        if self.from_ is not None:
            data["from"] = self.from_
        return data


OperationLike = PatchOperation | Mapping[str, Any]


def normalize_operations(operations: Iterable[OperationLike]) -> list[PatchOperation]:
    """Validate raw operations into ``PatchOperation`` models."""
    normalized: list[PatchOperation] = []
    for raw in operations:
        if isinstance(raw, PatchOperation):
            normalized.append(raw)
            continue
        try:
            normalized.append(PatchOperation.model_validate(dict(raw)))
        except (TypeError, ValueError, ValidationError) as exc:
            raise PatchApplyError(f"Malformed patch operation: {raw!r}") from exc
    return normalized


def apply_operations(payload: Any, operations: Iterable[OperationLike]) -> list[PatchOperation]:
    """Apply operations to ``payload`` in place and return the validated operations.

    Mappings and lists are patched directly. pydantic models are dumped,
    patched, re-validated and copied back field by field so the payload
    object keeps its identity.
    """
    ops = normalize_operations(operations)
    try:
        patch = jsonpatch.JsonPatch([op.to_dict() for op in ops])
    except (jsonpatch.JsonPatchException, jsonpointer.JsonPointerException) as exc:
        raise PatchApplyError(str(exc)) from exc

    if isinstance(payload, BaseModel):
        document = payload.model_dump()
        try:
            patched = patch.apply(document, in_place=True)
            updated = type(payload).model_validate(patched)
        except (jsonpatch.JsonPatchException, jsonpointer.JsonPointerException, ValidationError) as exc:
            raise PatchApplyError(str(exc)) from exc
        for name in type(payload).model_fields:
            setattr(payload, name, getattr(updated, name))
        return ops

    if not isinstance(payload, (dict, list)):
        raise PatchApplyError(f"Cannot patch payload of type {type(payload).__name__}")
    try:
        result = patch.apply(payload, in_place=True)
    except (jsonpatch.JsonPatchException, jsonpointer.JsonPointerException) as exc:
        raise PatchApplyError(str(exc)) from exc
    if result is not payload:
        # root-path writes hand back a new document instead of mutating
        _replace_contents(payload, result)
    return ops


def _replace_contents(payload: dict[str, Any] | list[Any], document: Any) -> None:
    if isinstance(payload, dict) and isinstance(document, dict):
        payload.clear()
        payload.update(document)
    elif isinstance(payload, list) and isinstance(document, list):
        payload[:] = document
    else:
        raise PatchApplyError(
            f"Root patch would turn {type(payload).__name__} into {type(document).__name__}"
        )


def diff_operations(before: Any, after: Any) -> list[PatchOperation]:
    """Operations turning ``before`` into ``after``."""
    if isinstance(before, BaseModel):
        before = before.model_dump()
    if isinstance(after, BaseModel):
        after = after.model_dump()
    patch = jsonpatch.make_patch(copy.deepcopy(before), copy.deepcopy(after))
    return normalize_operations(patch.patch)
