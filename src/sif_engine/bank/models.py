from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Effects(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    famC: List[str] = Field(default_factory=list)
    famO: List[str] = Field(default_factory=list)
    famF: List[str] = Field(default_factory=list)
    sevF: List[str] = Field(default_factory=list)
    faceC: List[str] = Field(default_factory=list)
    faceO: List[str] = Field(default_factory=list)
    faceF: List[str] = Field(default_factory=list)

    def families_for(self, pick: str) -> List[str]:
        return list(getattr(self, f"fam{pick}"))

    def faces_for(self, pick: str) -> List[str]:
        return list(getattr(self, f"face{pick}"))

    def face_buckets(self) -> Dict[str, List[str]]:
        return {"C": list(self.faceC), "O": list(self.faceO), "F": list(self.faceF)}


class ILFactorsTag(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["il_factors"]
    natural_instinct: float = Field(ge=0.0, le=1.0)
    situational_fit: float = Field(ge=0.0, le=1.0)
    social_expectation: float = Field(ge=0.0, le=1.0)
    internal_consistency: float = Field(ge=0.0, le=1.0)


class BehaviorTag(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["behavior"]
    primary: str
    energy: Literal["low", "medium", "high"] = "medium"


class ContextTag(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["context"]
    situation: str
    pressure: Literal["low", "medium", "high"] = "medium"


class SignalTag(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["signal"]
    alignment_strength: float = Field(default=1.0, ge=0.0)
    wobble_factor: float = Field(default=1.0, ge=0.0)


OptionTag = Annotated[
    Union[ILFactorsTag, BehaviorTag, ContextTag, SignalTag],
    Field(discriminator="kind"),
]


class QuestionOption(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    key: str
    label: str = ""
    pick: Literal["C", "O", "F"]
    effects: Effects = Field(default_factory=Effects)
    probe: Optional[Literal["continue", "collapse"]] = None
    tags: List[OptionTag] = Field(default_factory=list)

    def il_factors(self) -> Optional[ILFactorsTag]:
        for tag in self.tags:
            if isinstance(tag, ILFactorsTag):
                return tag
        return None


class Question(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    family: str
    phase: Literal["evidence", "module", "severity"]
    slot: Optional[Literal["CO1", "CO2", "CF"]] = None
    prompt: str = ""
    options: List[QuestionOption]

    def option(self, key: str) -> Optional[QuestionOption]:
        for option in self.options:
            if option.key == key:
                return option
        return None
