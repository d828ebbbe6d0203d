import ast
import unittest
from pathlib import Path

_ROUTES_DIR = Path(__file__).resolve().parents[1] / "assettrack" / "routes"


class RoutesLayeringTest(unittest.TestCase):
    def test_route_handlers_do_not_embed_sql_or_flow_rules(self) -> None:
        forbidden_snippets = (
            "db.execute(",
            "purchase_workflow.",
            "request_flow.",
            "audit.record_entry(",
        )
        route_files = sorted(_ROUTES_DIR.glob("*_routes.py"))
        self.assertTrue(route_files)

        for path in route_files:
            source = path.read_text(encoding="utf-8")
            module = ast.parse(source)
            lines = source.splitlines()

            for node in module.body:
                if not isinstance(node, ast.FunctionDef):
                    continue
                decorator_src = "\n".join(lines[d.lineno - 1] for d in node.decorator_list)
                if "_bp.route" not in decorator_src:
                    continue

                body_src = "\n".join(lines[node.lineno - 1 : node.end_lineno])
                for snippet in forbidden_snippets:
                    self.assertNotIn(
                        snippet,
                        body_src,
                        msg=f"{path.name}: handler `{node.name}` should not contain `{snippet}`",
                    )


if __name__ == "__main__":
    unittest.main()
