import unittest

from pydantic import ValidationError

from deptree.core.data_structures import Head, HeadKind, Token, Tree


class TestHead(unittest.TestCase):
    def test_three_states(self):
        self.assertTrue(Head.root().is_root)
        self.assertTrue(Head.unassigned().is_unassigned)
        self.assertTrue(Head.to("3").is_token)
        self.assertEqual([str(Head.root()), str(Head.unassigned()), str(Head.to("8.1"))], ["0", "_", "8.1"])

    def test_equality_is_by_value(self):
        self.assertEqual(Head.to("3"), Head.to("3"))
        self.assertNotEqual(Head.to("3"), Head.root())
        self.assertEqual(len({Head.to("3"), Head.to("3"), Head.root()}), 2)

    def test_inconsistent_head_is_rejected(self):
        with self.assertRaises(ValidationError):
            Head(kind=HeadKind.TOKEN)
        with self.assertRaises(ValidationError):
            Head(kind=HeadKind.ROOT, token_id="1")


class TestToken(unittest.TestCase):
    def test_invalid_id(self):
        with self.assertRaises(ValidationError):
            Token(id="abc")

    def test_defaults(self):
        token = Token(id="1")
        self.assertTrue(token.head.is_unassigned)
        self.assertEqual(token.form, "_")
        self.assertIsNone(token.rtl)

    def test_feature_labels(self):
        token = Token(
            id="2", form="мыла", upos="VERB", head=Head.root(), deprel="root",
            feats={"Tense": "Past"}, misc={"Gloss": "washed"},
        )
        self.assertEqual(token.feature("FORM"), "мыла")
        self.assertEqual(token.feature("HEAD"), "0")
        self.assertEqual(token.feature("FEATS.Tense"), "Tense=Past")
        self.assertEqual(token.feature("MISC.Gloss"), "Gloss=washed")
        self.assertEqual(token.feature("FEATS.Case"), "")
        self.assertEqual(token.feature("UNKNOWN"), "")


class TestTree(unittest.TestCase):
    def setUp(self):
        self.tree = Tree.from_tokens([
            Token(id="1-2", form="воим"),
            Token(id="1", form="во", feats={"Case": "Loc"}),
            Token(id="2", form="им", misc={"SpaceAfter": "No"}),
            Token(id="2.1", form="есть", feats={"Mood": "Ind"}),
        ], meta={"rtl": "yes"})

    def test_order_filters(self):
        self.assertEqual([t.id for t in self.tree.tokens_in_order()], ["1", "2"])
        self.assertEqual([t.id for t in self.tree.tokens_in_order(include_empty=True)], ["1", "2", "2.1"])
        self.assertEqual(
            [t.id for t in self.tree.tokens_in_order(include_empty=True, include_groups=True)],
            ["1-2", "1", "2", "2.1"],
        )
        self.assertEqual(self.tree.word_count(), 2)

    def test_all_features(self):
        self.assertEqual(
            self.tree.all_features(),
            ["FORM", "UPOS", "LEMMA", "FEATS.Case", "FEATS.Mood", "MISC.SpaceAfter"],
        )

    def test_duplicate_ids(self):
        with self.assertRaises(ValueError):
            Tree.from_tokens([Token(id="1"), Token(id="1")])

    def test_key_must_match_id(self):
        with self.assertRaises(ValidationError):
            Tree(nodes={"1": Token(id="2")})

    def test_clone_is_independent(self):
        copy = self.tree.clone()
        copy.nodes["1"].form = "на"
        self.assertEqual(self.tree.get("1").form, "во")
        self.assertTrue(copy.is_rtl())


if __name__ == '__main__':
    unittest.main()
