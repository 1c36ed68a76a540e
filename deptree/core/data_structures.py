# deptree/core/data_structures.py
import re
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Канонический идентификатор токена: "3", "8.1" (пустой узел), "1-2" (составной токен)
TokenId = str

TOKEN_ID_PATTERN = re.compile(r"^\d+(?:[.-]\d+)?$")
PLACEHOLDER = "_"

# Порядок "основных" признаков при автоматическом выборе отображаемых полей
CORE_FEATURES = ["FORM", "UPOS", "LEMMA"]


class HeadKind(str, Enum):
    ROOT = "root"
    UNASSIGNED = "unassigned"
    TOKEN = "token"


class Head(BaseModel):
    """
    Ссылка на вершину (governor) токена.
    Три взаимоисключающих состояния: корень (HEAD=0), не назначена (HEAD=_), конкретный токен.
    """
    model_config = ConfigDict(frozen=True)

    kind: HeadKind
    token_id: Optional[TokenId] = None

    @model_validator(mode='after')
    def check_target(self):
        if (self.kind == HeadKind.TOKEN) != (self.token_id is not None):
            raise ValueError(f"Head of kind '{self.kind.value}' has inconsistent token_id={self.token_id!r}")
        return self

    @classmethod
    def root(cls) -> "Head":
        return cls(kind=HeadKind.ROOT)

    @classmethod
    def unassigned(cls) -> "Head":
        return cls(kind=HeadKind.UNASSIGNED)

    @classmethod
    def to(cls, token_id: TokenId) -> "Head":
        return cls(kind=HeadKind.TOKEN, token_id=str(token_id))

    @property
    def is_root(self) -> bool:
        return self.kind == HeadKind.ROOT

    @property
    def is_unassigned(self) -> bool:
        return self.kind == HeadKind.UNASSIGNED

    @property
    def is_token(self) -> bool:
        return self.kind == HeadKind.TOKEN

    def __str__(self):
        if self.is_root:
            return "0"
        if self.is_unassigned:
            return PLACEHOLDER
        return self.token_id


class Token(BaseModel):
    """
    Одна строка CoNLL-U.
    FEATS/MISC хранятся как словари, DEPS как словарь: id вторичной вершины -> отношение.
    """
    id: TokenId
    form: str = PLACEHOLDER
    lemma: str = PLACEHOLDER
    upos: str = PLACEHOLDER
    xpos: str = PLACEHOLDER
    feats: Dict[str, Optional[str]] = Field(default_factory=dict)
    head: Head = Field(default_factory=Head.unassigned)
    deprel: str = PLACEHOLDER
    deps: Dict[TokenId, str] = Field(default_factory=dict)
    misc: Dict[str, Optional[str]] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def check_id(cls, value: str) -> str:
        if not TOKEN_ID_PATTERN.match(value):
            raise ValueError(f"Invalid token id: {value!r}")
        return value

    @property
    def is_empty_node(self) -> bool:
        return "." in self.id

    @property
    def is_group(self) -> bool:
        return "-" in self.id

    @property
    def rtl(self) -> Optional[str]:
        """Переопределение направления из MISC: 'yes', 'no' или None."""
        return self.misc.get("rtl")

    def feature(self, name: str) -> str:
        """
        Текст метки для признака: 'FORM', 'UPOS', ... или вложенного 'FEATS.Case' / 'MISC.Gloss'.
        Вложенные признаки выводятся как 'key=value', отсутствующие - пустой строкой.
        """
        family, _, key = name.partition(".")
        if key:
            mapping = {"FEATS": self.feats, "MISC": self.misc}.get(family, {})
            value = mapping.get(key)
            return f"{key}={value}" if value else ""

        value = {
            "ID": self.id,
            "FORM": self.form,
            "LEMMA": self.lemma,
            "UPOS": self.upos,
            "XPOS": self.xpos,
            "HEAD": str(self.head),
            "DEPREL": self.deprel,
        }.get(name)
        return value or ""


class Tree(BaseModel):
    """
    Дерево зависимостей одного предложения: упорядоченные узлы + метаданные.
    Порядок словаря nodes - логический порядок аннотации.
    """
    nodes: Dict[TokenId, Token] = Field(default_factory=dict)
    meta: Dict[str, Optional[str]] = Field(default_factory=dict)

    @model_validator(mode='after')
    def check_keys(self):
        for key, token in self.nodes.items():
            if key != token.id:
                raise ValueError(f"Node key {key!r} does not match token id {token.id!r}")
        return self

    @classmethod
    def from_tokens(cls, tokens: List[Token], meta: Optional[Dict[str, Optional[str]]] = None) -> "Tree":
        nodes: Dict[TokenId, Token] = {}
        for token in tokens:
            if token.id in nodes:
                raise ValueError(f"Duplicate token id: {token.id}")
            nodes[token.id] = token
        return cls(nodes=nodes, meta=dict(meta or {}))

    def get(self, token_id: TokenId) -> Optional[Token]:
        return self.nodes.get(str(token_id))

    def tokens_in_order(self, include_empty: bool = False, include_groups: bool = False) -> List[Token]:
        result = []
        for token in self.nodes.values():
            if token.is_empty_node and not include_empty:
                continue
            if token.is_group and not include_groups:
                continue
            result.append(token)
        return result

    def word_count(self) -> int:
        """Количество обычных слов (без пустых узлов и составных токенов)."""
        return len(self.tokens_in_order())

    def is_rtl(self) -> bool:
        return self.meta.get("rtl") == "yes"

    def is_empty(self) -> bool:
        return not self.nodes

    def all_features(self) -> List[str]:
        feats_keys = set()
        misc_keys = set()
        for token in self.nodes.values():
            feats_keys.update(token.feats)
            misc_keys.update(token.misc)

        return (
            list(CORE_FEATURES)
            + [f"FEATS.{key}" for key in sorted(feats_keys)]
            + [f"MISC.{key}" for key in sorted(misc_keys)]
        )

    def clone(self) -> "Tree":
        return self.model_copy(deep=True)
