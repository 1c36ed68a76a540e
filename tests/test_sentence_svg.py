import unittest

from deptree.config import ModifiedEdge, ModifiedNode, Packages, RenderOptions
from deptree.core.data_structures import Head, Token, Tree
from deptree.core.events import EventBus, TreeUpdatedEvent
from deptree.ingestion.conllu_codec import sentence_tree_to_conll
from deptree.render.sentence_svg import DIFF_CLASS, SentenceSVG
from deptree.render.svg_surface import SvgSurface


def make_tree(meta=None):
    return Tree.from_tokens([
        Token(id="1", form="Мама", lemma="мама", upos="NOUN", head=Head.to("2"), deprel="nsubj",
              feats={"Case": "Nom"}),
        Token(id="2", form="мыла", lemma="мыть", upos="VERB", head=Head.root(), deprel="root"),
        Token(id="3", form="раму", lemma="рама", upos="NOUN", head=Head.to("2"), deprel="obj",
              misc={"highlight": "blue"}),
    ], meta=meta)


class TestSentenceSVG(unittest.TestCase):
    def setUp(self):
        self.surface = SvgSurface()
        self.bus = EventBus()

    def render(self, tree=None, **options):
        options.setdefault("shown_features", ["FORM", "UPOS"])
        return SentenceSVG(self.surface, self.bus, tree or make_tree(), RenderOptions(**options))

    def test_initial_render(self):
        svg = self.render()

        self.assertEqual(svg.order, ["1", "2", "3"])
        self.assertEqual(svg.levels, [1, 0, 1])
        self.assertEqual(len(svg.rendered), 3)
        self.assertEqual(len(svg.edges), 3)
        self.assertEqual(svg.render_count, 1)
        self.assertEqual((self.surface.width, self.surface.height), (svg.total_width, svg.total_height))
        self.assertEqual(svg.controllers, {})
        self.assertNotIn("interactive", self.surface.classes)

    def test_form_is_always_first(self):
        svg = self.render(shown_features=["UPOS", "FORM", "LEMMA"])
        self.assertEqual(svg.options.shown_features, ["FORM", "UPOS", "LEMMA"])

    def test_default_features_come_from_tree(self):
        svg = self.render(shown_features=[])
        self.assertEqual(
            svg.options.shown_features,
            ["FORM", "UPOS", "LEMMA", "FEATS.Case", "MISC.highlight"],
        )

    def test_caller_options_are_not_mutated(self):
        options = RenderOptions(shown_features=["UPOS"])
        SentenceSVG(self.surface, self.bus, make_tree(), options)
        self.assertEqual(options.shown_features, ["UPOS"])

    def test_rerender_is_idempotent(self):
        svg = self.render(interactive=True)
        first = self.surface.to_string()
        levels = list(svg.levels)

        svg.refresh()

        self.assertEqual(self.surface.to_string(), first)
        self.assertEqual(svg.levels, levels)
        self.assertEqual(svg.render_count, 2)

    def test_tree_updated_event(self):
        svg = self.render()
        new_tree = make_tree()
        new_tree.nodes["3"].head = Head.to("1")

        self.bus.publish(TreeUpdatedEvent(tree=new_tree))

        self.assertIs(svg.tree, new_tree)
        self.assertEqual(svg.render_count, 2)
        self.assertEqual(svg.edges[2].target, Head.to("1"))

    def test_rerender_requested_during_render_is_deferred(self):
        svg = self.render()
        populate = svg.populate_levels
        seen = []

        def populate_levels():
            seen.append(svg.render_count)
            if len(seen) == 1:
                svg.refresh()
                # Вложенный вызов не начал новую отрисовку
                self.assertEqual(len(seen), 1)
            populate()

        svg.populate_levels = populate_levels
        svg.refresh()

        self.assertEqual(seen, [1, 2])
        self.assertEqual(svg.render_count, 3)

    def test_rtl_sentence(self):
        svg = self.render(tree=make_tree(meta={"rtl": "yes"}))
        self.assertEqual(svg.order, ["3", "2", "1"])
        self.assertEqual([r.id for r in svg.rendered], ["3", "2", "1"])
        self.assertLess(svg.rendered[0].start_x, svg.rendered[2].start_x)

    def test_group_and_empty_tokens_are_optional(self):
        tree = make_tree()
        tree.nodes["2.1"] = Token(id="2.1", form="есть", deps={"2": "orphan"})

        self.assertEqual(self.render(tree=tree).order, ["1", "2", "3"])

        svg = self.render(tree=tree, draw_enhanced_tokens=True)
        self.assertEqual(svg.order, ["1", "2", "3", "2.1"])
        self.assertTrue(any(edge.enhanced for edge in svg.edges))

    def test_highlight_matches_and_packages(self):
        packages = Packages(
            modified_nodes=[ModifiedNode(id="1", features=["upos", "Case"])],
            modified_edges=[ModifiedEdge(src="2", edge="nsubj", tar="1")],
        )
        svg = self.render(shown_features=["FORM", "UPOS", "FEATS.Case"], matches=["2"], packages=packages)
        mama, myla, ramu = svg.rendered

        self.assertEqual(ramu.elements["FORM"].style("fill"), "blue")
        self.assertEqual(myla.elements["FORM"].style("fill"), "red")
        self.assertEqual(mama.elements["UPOS"].style("fill"), "red")
        self.assertEqual(mama.elements["FEATS.Case"].style("fill"), "red")
        self.assertEqual(mama.elements["arc"].style("stroke"), "red")
        self.assertIsNone(ramu.elements["arc"].style("stroke"))

    def test_invalid_tree_is_rendered_with_warning(self):
        tree = make_tree()
        tree.nodes["3"].head = Head.to("9")

        with self.assertLogs("deptree.render.sentence_svg", level="WARNING"):
            svg = self.render(tree=tree)

        self.assertEqual(len(svg.rendered), 3)
        self.assertEqual(len(svg.edges), 2)

    def test_preset_locations_keep_positions(self):
        svg = self.render()
        locations = svg.token_locations()

        other = SentenceSVG(SvgSurface(), EventBus(), make_tree(),
                            RenderOptions(shown_features=["FORM", "UPOS"], preset_locations=locations))

        self.assertEqual([r.start_x for r in other.rendered], [r.start_x for r in svg.rendered])


class TestDiffMode(unittest.TestCase):
    def setUp(self):
        self.surface = SvgSurface()
        self.svg = SentenceSVG(self.surface, EventBus(), make_tree(), RenderOptions(shown_features=["FORM", "UPOS"]))

    def test_plug_and_unplug_reference(self):
        reference = make_tree()
        reference.nodes["1"].deprel = "obj"
        reference.nodes["2"].upos = "AUX"
        reference.nodes["3"].head = Head.to("1")

        self.svg.plug_diff_tree(reference)

        self.assertEqual(len(self.svg.diffs), 3)
        mama, myla, ramu = self.svg.rendered
        self.assertTrue(mama.elements["DEPREL"].has_class(DIFF_CLASS))
        self.assertTrue(myla.elements["UPOS"].has_class(DIFF_CLASS))
        self.assertTrue(ramu.elements["arc"].has_class(DIFF_CLASS))
        self.assertTrue(ramu.elements["arrowhead"].has_class(DIFF_CLASS))
        self.assertFalse(mama.elements["UPOS"].has_class(DIFF_CLASS))

        self.svg.unplug_diff_tree()

        self.assertEqual(self.svg.diffs, [])
        self.assertEqual(self.surface.find_by_class(DIFF_CLASS), [])

    def test_self_reference_flags_nothing(self):
        self.svg.plug_diff_tree(make_tree())
        self.assertEqual(self.svg.diffs, [])
        self.assertEqual(self.surface.find_by_class(DIFF_CLASS), [])

    def test_mismatched_reference_is_noop(self):
        reference = make_tree()
        del reference.nodes["3"]
        reference.nodes["2"].upos = "AUX"

        self.svg.plug_diff_tree(reference)

        self.assertEqual(self.svg.diffs, [])

    def test_none_reference_is_ignored(self):
        count = self.svg.render_count
        self.svg.plug_diff_tree(None)
        self.assertEqual(self.svg.render_count, count)

    def test_diff_stats(self):
        stats = self.svg.get_diff_stats(self.svg.export_conll())
        for name in ("HEAD", "DEPREL", "UPOS"):
            self.assertEqual(stats.totals[name], 3)
            self.assertEqual(stats.corrects[name], 3)

        reference = make_tree()
        reference.nodes["1"].deprel = "obj"
        stats = self.svg.get_diff_stats(sentence_tree_to_conll(reference))
        self.assertEqual(stats.corrects["DEPREL"], 2)

    def test_diff_stats_with_empty_reference(self):
        stats = self.svg.get_diff_stats("")
        self.assertEqual(stats.totals["HEAD"], 0)

    def test_export_and_update_token(self):
        self.svg.update_token(Token(id="3", form="раму", upos="NOUN", head=Head.to("1"), deprel="obl"))
        text = self.svg.export_conll()
        self.assertIn("3\tраму\t_\tNOUN\t_\t_\t1\tobl\t_\t_", text)


if __name__ == '__main__':
    unittest.main()
