import unittest

from flowviz.core.enums import LayoutDirection, NodeCategory
from flowviz.services.collapse import Visibility, collapse
from flowviz.services.graph_builder import GraphBuilder
from flowviz.services.layout import LayeredLayout, layout, node_size

from helpers import example_transactions, tx


def _overlaps(a, b) -> bool:
    return not (
        a.position.x + a.width <= b.position.x
        or b.position.x + b.width <= a.position.x
        or a.position.y + a.height <= b.position.y
        or b.position.y + b.height <= a.position.y
    )


class LayoutTests(unittest.TestCase):
    def setUp(self) -> None:
        self.graph = GraphBuilder().build(
            "A",
            example_transactions() + [tx("h3", "incoming", 7, "D", "A"), tx("s", "outgoing", 1, "A", "A")],
            "0",
        )

    def test_node_sizes_by_category(self) -> None:
        self.assertEqual(node_size(NodeCategory.INCOMING_TRANSACTION), (200.0, 100.0))
        self.assertEqual(node_size(NodeCategory.OUTGOING_TRANSACTION), (200.0, 100.0))
        self.assertEqual(node_size(NodeCategory.CENTRAL_ADDRESS), (180.0, 80.0))
        self.assertEqual(node_size(NodeCategory.SELF_TRANSACTION), (180.0, 80.0))

    def test_every_node_positioned_in_input_order(self) -> None:
        placed = layout(self.graph.nodes, self.graph.edges)

        self.assertEqual([p.node.id for p in placed], [n.id for n in self.graph.nodes])

    def test_left_to_right_follows_flow(self) -> None:
        placed = {p.node.id: p for p in layout(self.graph.nodes, self.graph.edges)}

        self.assertLess(placed["addr-B"].position.x, placed["tx-h1"].position.x)
        self.assertLess(placed["tx-h1"].position.x, placed["central-A"].position.x)
        self.assertLess(placed["central-A"].position.x, placed["tx-h2"].position.x)
        self.assertLess(placed["tx-h2"].position.x, placed["addr-C"].position.x)

    def test_top_to_bottom_follows_flow(self) -> None:
        placed = {
            p.node.id: p
            for p in layout(self.graph.nodes, self.graph.edges, LayoutDirection.TOP_BOTTOM)
        }

        self.assertLess(placed["addr-B"].position.y, placed["central-A"].position.y)
        self.assertLess(placed["central-A"].position.y, placed["addr-C"].position.y)

    def test_boxes_do_not_overlap(self) -> None:
        for direction in LayoutDirection:
            placed = layout(self.graph.nodes, self.graph.edges, direction)
            for i in range(len(placed)):
                for j in range(i + 1, len(placed)):
                    self.assertFalse(
                        _overlaps(placed[i], placed[j]),
                        f"{placed[i].node.id} overlaps {placed[j].node.id} ({direction.value})",
                    )

    def test_position_is_center_minus_half_box(self) -> None:
        engine = LayeredLayout()
        centers = engine.compute(self.graph.nodes, self.graph.edges)

        for p in engine.layout(self.graph.nodes, self.graph.edges):
            cx, cy = centers[p.node.id]
            self.assertAlmostEqual(p.position.x, cx - p.width / 2)
            self.assertAlmostEqual(p.position.y, cy - p.height / 2)

    def test_ranks_are_separated(self) -> None:
        view = collapse(self.graph.nodes, self.graph.edges, Visibility())
        placed = {p.node.id: p for p in LayeredLayout(ranksep=200).layout(view.nodes, view.edges)}

        b, a = placed["addr-B"], placed["central-A"]
        self.assertAlmostEqual(b.position.x, 0.0)
        # dot rounds to whole points
        self.assertGreaterEqual(a.position.x - (b.position.x + b.width), 199)

    def test_cycles_and_self_loops_are_tolerated(self) -> None:
        view = collapse(self.graph.nodes, self.graph.edges, Visibility())
        # the hidden self-transfer left a central->central loop
        self.assertTrue(any(e.source == e.target for e in view.edges))

        placed = layout(view.nodes, view.edges)
        self.assertEqual(len(placed), len(view.nodes))

    def test_drawing_starts_at_origin(self) -> None:
        for direction in LayoutDirection:
            placed = layout(self.graph.nodes, self.graph.edges, direction)
            self.assertAlmostEqual(min(p.position.x for p in placed), 0.0)
            self.assertAlmostEqual(min(p.position.y for p in placed), 0.0)

    def test_dangling_edges_are_ignored(self) -> None:
        placed = layout(self.graph.nodes[:1], self.graph.edges)

        self.assertEqual([p.node.id for p in placed], ["central-A"])
        self.assertAlmostEqual(placed[0].position.x, 0.0)
        self.assertAlmostEqual(placed[0].position.y, 0.0)

    def test_empty_graph(self) -> None:
        self.assertEqual(layout((), ()), [])


if __name__ == "__main__":
    unittest.main()
