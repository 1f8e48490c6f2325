from pydantic import BaseModel


class ValueSetConcept(BaseModel):
    code: str
    display: str | None = None
    definition: str | None = None


class ValueSetEntry(BaseModel):
    system: str | None = None
    concept: list[ValueSetConcept] = []


class ValueSet(BaseModel):
    id: str | None = None
    url: str
    include: list[ValueSetEntry] = []

    @property
    def concepts(self) -> list[ValueSetConcept]:
        return [concept for entry in self.include for concept in entry.concept]
