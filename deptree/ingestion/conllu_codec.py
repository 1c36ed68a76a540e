# deptree/ingestion/conllu_codec.py
import logging
from typing import Dict, Generator, Optional, TextIO, Tuple, Union

import conllu
from conllu.exceptions import ParseException
from conllu.models import Token as ConlluToken, TokenList

from deptree.core.data_structures import PLACEHOLDER, Head, Token, TokenId, Tree

logger = logging.getLogger(__name__)

ConlluId = Union[int, Tuple]


class CodecError(ValueError):
    """Текст не удалось разобрать как CoNLL-U."""


def id_to_str(conllu_id: ConlluId) -> TokenId:
    """
    Приводит ID из conllu к каноническому виду.
    Пустые узлы: (8, '.', 1) -> "8.1", составные токены: (1, '-', 2) -> "1-2".
    """
    if isinstance(conllu_id, tuple):
        return "".join(str(part) for part in conllu_id)
    return str(conllu_id)


def str_to_id(token_id: TokenId) -> ConlluId:
    for sep in (".", "-"):
        if sep in token_id:
            left, right = token_id.split(sep, 1)
            return int(left), sep, int(right)
    return int(token_id)


def _head_from_conllu(value) -> Head:
    if value is None or value == PLACEHOLDER:
        return Head.unassigned()
    if value == 0:
        return Head.root()
    return Head.to(id_to_str(value))


def _head_to_conllu(head: Head) -> Optional[ConlluId]:
    if head.is_unassigned:
        return None
    if head.is_root:
        return 0
    return str_to_id(head.token_id)


def _deps_from_conllu(value) -> Dict[TokenId, str]:
    # conllu отдает DEPS как список пар (relation, head); строка означает нераспознанный формат
    deps = {}
    if isinstance(value, list):
        for relation, head in value:
            deps[id_to_str(head)] = relation
    elif value:
        logger.debug(f"Unparsed DEPS value skipped: {value!r}")
    return deps


def _text(value) -> str:
    return PLACEHOLDER if value is None else str(value)


def token_from_conllu(raw: dict) -> Token:
    return Token(
        id=id_to_str(raw["id"]),
        form=_text(raw.get("form")),
        lemma=_text(raw.get("lemma")),
        upos=_text(raw.get("upos")),
        xpos=_text(raw.get("xpos")),
        feats=dict(raw.get("feats") or {}),
        head=_head_from_conllu(raw.get("head")),
        deprel=_text(raw.get("deprel")),
        deps=_deps_from_conllu(raw.get("deps")),
        misc=dict(raw.get("misc") or {}),
    )


def token_to_conllu(token: Token) -> ConlluToken:
    deps = [(relation, str_to_id(head_id)) for head_id, relation in token.deps.items()]
    return ConlluToken({
        "id": str_to_id(token.id),
        "form": token.form,
        "lemma": token.lemma,
        "upos": token.upos,
        "xpos": token.xpos,
        "feats": dict(token.feats) or None,
        "head": _head_to_conllu(token.head),
        "deprel": token.deprel,
        # Пустой список conllu сериализовать не умеет
        "deps": deps or None,
        "misc": dict(token.misc) or None,
    })


def tree_from_tokenlist(token_list: TokenList) -> Tree:
    tokens = [token_from_conllu(raw) for raw in token_list]
    return Tree.from_tokens(tokens, meta=dict(token_list.metadata))


def tree_to_tokenlist(tree: Tree) -> TokenList:
    return TokenList(
        [token_to_conllu(token) for token in tree.nodes.values()],
        metadata=dict(tree.meta),
    )


def sentence_conll_to_tree(text: str) -> Tree:
    """
    Разбирает одно предложение CoNLL-U.
    Пустой текст дает пустое дерево.
    """
    if not text or not text.strip():
        return Tree()

    try:
        sentences = conllu.parse(text)
    except ParseException as e:
        raise CodecError(f"Invalid CoNLL-U: {e}") from e

    if not sentences:
        return Tree()
    if len(sentences) > 1:
        logger.warning(f"Expected one sentence, got {len(sentences)}. Using the first one.")

    return tree_from_tokenlist(sentences[0])


def sentence_tree_to_conll(tree: Tree) -> str:
    return tree_to_tokenlist(tree).serialize()


def iter_trees(stream: TextIO) -> Generator[Tree, None, None]:
    """
    Потоковое чтение файла CoNLL-U.
    """
    try:
        # parse_incr читает файл лениво
        for token_list in conllu.parse_incr(stream):
            yield tree_from_tokenlist(token_list)
    except ParseException as e:
        raise CodecError(f"Invalid CoNLL-U stream: {e}") from e
