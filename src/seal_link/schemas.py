"""Pydantic schemas for Seal API responses.

Responses are validated here and converted into the plain models of
``seal_link.models`` before they leave the client.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

from seal_link.models import ChangeSet, ExternalEntity, FileReference


class _Schema(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class FileReferenceSchema(_Schema):
    id: StrictStr
    version: StrictInt | None = None

    def to_model(self) -> FileReference:
        return FileReference(id=self.id, version=self.version)


class TemplateSchema(_Schema):
    id: str | None = None


class SourceInfoSchema(_Schema):
    template: TemplateSchema | None = None


class FieldSchema(_Schema):
    type: str | None = None
    value: Any = None


class EntitySchema(_Schema):
    id: StrictStr
    title: str | None = ""
    version: Any = None
    source_info: SourceInfoSchema | None = Field(default=None, alias="sourceInfo")
    fields: dict[str, FieldSchema] | None = None

    def to_model(self) -> ExternalEntity:
        template_id = None
        if self.source_info and self.source_info.template:
            template_id = self.source_info.template.id

        references: dict[str, list[FileReference]] = {}
        for name, entity_field in (self.fields or {}).items():
            if entity_field.type != "REFERENCE" or not isinstance(entity_field.value, list):
                continue
            # Malformed items are kept with an empty id so callers can skip them explicitly
            refs = []
            for item in entity_field.value:
                if isinstance(item, dict) and isinstance(item.get("id"), str):
                    version = item.get("version")
                    refs.append(FileReference(id=item["id"], version=version if _is_int(version) else None))
                else:
                    refs.append(FileReference(id=""))
            references[name] = refs

        return ExternalEntity(
            id=self.id,
            title=self.title or "",
            template_id=template_id,
            version=self.version if _is_int(self.version) else None,
            fields=references,
        )


class ChangeSetSchema(_Schema):
    index: StrictStr = Field(min_length=1)
    id: str = ""
    name: str = ""
    status: Literal["OPEN", "IN_REVIEW", "CLOSED"] | None = None
    description: str | None = None
    entity_refs: list[FileReferenceSchema] = Field(default_factory=list, alias="entityRefs")

    def to_model(self) -> ChangeSet:
        return ChangeSet(
            index=self.index,
            id=self.id,
            name=self.name,
            status=self.status,
            description=self.description,
            entity_refs=[ref.to_model() for ref in self.entity_refs],
        )


class UploadResponseSchema(_Schema):
    id: StrictStr = Field(min_length=1)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
