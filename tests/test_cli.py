import tempfile
import unittest
import xml.etree.ElementTree as ET
from pathlib import Path

from deptree.cli import corpus_stats, main, render_corpus, validate_corpus

GOLD = "\n".join([
    "# sent_id = s1",
    "1\tМама\tмама\tNOUN\t_\t_\t2\tnsubj\t_\t_",
    "2\tмыла\tмыть\tVERB\t_\t_\t0\troot\t_\t_",
    "3\tраму\tрама\tNOUN\t_\t_\t2\tobj\t_\t_",
    "",
    "# sent_id = s2",
    "1\tОн\tон\tPRON\t_\t_\t2\tnsubj\t_\t_",
    "2\tспит\tспать\tVERB\t_\t_\t0\troot\t_\t_",
    "",
    "# sent_id = broken",
    "1\tцикл\tцикл\tNOUN\t_\t_\t2\tdep\t_\t_",
    "2\tцикл\tцикл\tNOUN\t_\t_\t1\tdep\t_\t_",
]) + "\n\n"

PRED = "\n".join([
    "# sent_id = s1",
    "1\tМама\tмама\tNOUN\t_\t_\t2\tnsubj\t_\t_",
    "2\tмыла\tмыть\tVERB\t_\t_\t0\troot\t_\t_",
    "3\tраму\tрама\tPROPN\t_\t_\t1\tobj\t_\t_",
    "",
    "# sent_id = s2",
    "1\tОн\tон\tPRON\t_\t_\t0\troot\t_\t_",
    "",
]) + "\n"


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self.tmp.name)
        self.gold = self.tmp_path / "gold.conllu"
        self.pred = self.tmp_path / "pred.conllu"
        self.gold.write_text(GOLD, encoding="utf-8")
        self.pred.write_text(PRED, encoding="utf-8")

    def tearDown(self):
        self.tmp.cleanup()

    def test_render_skips_invalid_sentences(self):
        out_dir = self.tmp_path / "svg"
        written = render_corpus(self.gold, out_dir)

        self.assertEqual(written, 2)
        self.assertEqual(sorted(p.name for p in out_dir.iterdir()), ["s1.svg", "s2.svg"])

        svg = ET.fromstring((out_dir / "s1.svg").read_text(encoding="utf-8"))
        self.assertTrue(svg.tag.endswith("svg"))

    def test_stats_skip_mismatched_sentences(self):
        stats = corpus_stats(self.gold, self.pred)

        self.assertEqual(stats.totals["HEAD"], 3)
        self.assertEqual(stats.corrects["HEAD"], 2)
        self.assertEqual(stats.corrects["UPOS"], 2)
        self.assertEqual(stats.corrects["DEPREL"], 3)

    def test_validate_reports_broken_sentences(self):
        stats = validate_corpus(self.gold)

        self.assertEqual(stats["total"], 3)
        self.assertEqual(stats["valid"], 2)
        self.assertEqual(stats["invalid"], 1)
        self.assertEqual(stats["errors"][0]["id"], "broken")

    def test_main(self):
        out_dir = self.tmp_path / "out"
        self.assertEqual(main(["render", str(self.gold), "-o", str(out_dir), "--rtl"]), 0)
        self.assertEqual(main(["stats", str(self.gold), str(self.gold)]), 0)
        self.assertEqual(main(["stats", str(self.tmp_path / "missing.conllu"), str(self.gold)]), 1)
        self.assertEqual(main(["validate", str(self.gold)]), 1)
        self.assertEqual(main(["validate", str(self.pred), "--strict"]), 0)


if __name__ == '__main__':
    unittest.main()
