# /kitbuild/models.py

from typing import Annotated, Any, List, Literal, Optional, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator

# Shared Pydantic data structures for goal maps, learner maps and analytics.

CONCEPT_KINDS = ("text", "image")
CONNECTOR_KIND = "connector"

# Longer spellings used by some clients for the two concept variants.
_KIND_ALIASES = {"concept-text": "text", "concept-image": "image"}


def normalize_kind(value: Any) -> Any:
    return _KIND_ALIASES.get(value, value)


def _node_tag(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        raw = value.get("kind", value.get("type"))
    else:
        raw = getattr(value, "kind", None)
    return normalize_kind(raw)


# --- Graph Primitives ---

class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class LabelData(BaseModel):
    model_config = ConfigDict(extra="allow")

    label: str = ""


class ImageData(BaseModel):
    model_config = ConfigDict(extra="allow")

    caption: str = ""
    url: str = ""


class _NodeBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Identifier of the node, unique within one graph.")
    position: Optional[Position] = Field(default=None, description="Canvas position. Carried through only.")

    @field_validator("kind", mode="before", check_fields=False)
    @classmethod
    def _accept_long_kind(cls, value):
        return normalize_kind(value)

    @property
    def is_concept(self) -> bool:
        return self.kind in CONCEPT_KINDS

    @property
    def is_connector(self) -> bool:
        return self.kind == CONNECTOR_KIND


class TextNode(_NodeBase):
    kind: Literal["text"] = Field("text", validation_alias=AliasChoices("kind", "type"))
    data: LabelData = Field(default_factory=LabelData)

    @property
    def label(self) -> str:
        return self.data.label


class ImageNode(_NodeBase):
    kind: Literal["image"] = Field("image", validation_alias=AliasChoices("kind", "type"))
    data: ImageData = Field(default_factory=ImageData)

    @property
    def label(self) -> str:
        return self.data.caption


class ConnectorNode(_NodeBase):
    kind: Literal["connector"] = Field("connector", validation_alias=AliasChoices("kind", "type"))
    data: LabelData = Field(default_factory=LabelData)

    @property
    def label(self) -> str:
        return self.data.label


Node = Annotated[
    Union[
        Annotated[TextNode, Tag("text")],
        Annotated[ImageNode, Tag("image")],
        Annotated[ConnectorNode, Tag("connector")],
    ],
    Discriminator(_node_tag),
]


class Edge(BaseModel):
    # Rendering keys (handles, style, animated, ...) ride along untouched.
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(default=None, description="Edge id. Derived from source and target when absent.")
    source: str = Field(description="The ID of the source node.")
    target: str = Field(description="The ID of the target node.")

    @property
    def key(self) -> str:
        """Identity used for matching: two edges are the same when their endpoints are."""
        return f"{self.source}-{self.target}"

    @property
    def edge_id(self) -> str:
        return self.id if self.id is not None else self.key


class KnowledgeGraph(BaseModel):
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)


# --- Validation ---

class PropositionRef(BaseModel):
    source_id: str
    link_id: str
    target_id: str


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    propositions: List[PropositionRef] = Field(default_factory=list)


# --- Comparison ---

class NodeLabel(BaseModel):
    id: str
    label: str


class Proposition(BaseModel):
    source: NodeLabel
    link: NodeLabel
    target: NodeLabel


class MapComparison(BaseModel):
    match: List[Edge] = Field(default_factory=list)
    miss: List[Edge] = Field(default_factory=list)
    excessive: List[Edge] = Field(default_factory=list)


class EdgeLink(BaseModel):
    source: str
    target: str
    edge_id: Optional[str] = None


class DiagnosisResult(BaseModel):
    correct: List[EdgeLink] = Field(default_factory=list)
    missing: List[EdgeLink] = Field(default_factory=list)
    excessive: List[EdgeLink] = Field(default_factory=list)
    score: float = Field(description="Share of goal edges reproduced by the learner, rounded to two decimals.")
    total_goal_edges: int


class EdgeClassification(BaseModel):
    edge: Edge
    type: Literal["correct", "missing", "excessive", "neutral"]


# --- Group Analytics ---

class LearnerComparisonRecord(BaseModel):
    user_id: str
    user_name: str
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    comparison: MapComparison


class GroupedProposition(BaseModel):
    source: NodeLabel
    link: NodeLabel
    target: NodeLabel
    count: int
    learner_ids: List[str] = Field(default_factory=list)
    learner_names: List[str] = Field(default_factory=list)
    type: Literal["match", "miss", "excessive", "leave", "abandon"]


class GroupComparison(BaseModel):
    match: List[GroupedProposition] = Field(default_factory=list)
    miss: List[GroupedProposition] = Field(default_factory=list)
    excessive: List[GroupedProposition] = Field(default_factory=list)
    leave: List[GroupedProposition] = Field(default_factory=list)
    abandon: List[GroupedProposition] = Field(default_factory=list)


class AssignmentSummary(BaseModel):
    total_learners: int
    submitted_count: int
    draft_count: int
    avg_score: Optional[float] = None
    median_score: Optional[float] = None
    highest_score: Optional[float] = None
    lowest_score: Optional[float] = None


class ExportResult(BaseModel):
    filename: str
    data: str
    content_type: Literal["text/csv", "application/json"]


# --- Stored Documents ---

class GoalMap(BaseModel):
    id: str
    title: str = ""
    description: Optional[str] = None
    teacher_id: Optional[str] = None
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)


class LearnerMap(BaseModel):
    id: str
    goal_map_id: str
    user_id: str
    user_name: str = ""
    status: Literal["draft", "submitted", "graded"] = "draft"
    attempt: int = 1
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)


class KitNode(BaseModel):
    id: str
    kind: Literal["text", "image", "connector"]
    label: str
    image_url: Optional[str] = None
    position: Optional[Position] = None


class Kit(BaseModel):
    goal_map_id: str
    layout: Literal["preset", "random"] = "preset"
    nodes: List[KitNode] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)


class CurrentUser(BaseModel):
    id: str
    name: str = ""
    roles: List[str] = Field(default_factory=list)
