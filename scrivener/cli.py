import argparse
from pathlib import Path

from scrivener.hot_reload import watch
from scrivener.render import render_document


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scrivener",
        description="Render a directive document, writing every file it builds up along the way.",
    )
    parser.add_argument("input_file")
    parser.add_argument("output_file")
    parser.add_argument(
        "--output-root",
        default=None,
        help="Directory that generated files are written under (defaults to the current directory)",
    )
    parser.add_argument("--watch", action="store_true", help="Re-render whenever the input file changes")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    input_file = Path(args.input_file)
    output_file = Path(args.output_file)
    output_root = Path(args.output_root) if args.output_root else None
    if args.watch:
        watch(input_file, output_file, output_root)
    else:
        render_document(input_file, output_file, output_root)


if __name__ == "__main__":
    main()


class TestCli:
    def test_parse_args(self):
        args = build_parser().parse_args(["in.md", "out.md", "--output-root", "generated", "--watch"])
        assert args.input_file == "in.md"
        assert args.output_file == "out.md"
        assert args.output_root == "generated"
        assert args.watch

    def test_main(self, tmp_path):
        input_file = tmp_path / "in.md"
        output_file = tmp_path / "out.md"
        input_file.write_text("Hello\n{{append src/lib.rs\nuse: use std::fmt;\n}}\n{{listing src/lib.rs}}\n")
        main([input_file.as_posix(), output_file.as_posix(), "--output-root", (tmp_path / "gen").as_posix()])
        assert (tmp_path / "gen" / "src" / "lib.rs").read_text() == "// File: `src/lib.rs`\n\nuse std::fmt;\n"
        assert output_file.read_text() == (
            "Hello\n"
            "```rust\n// File: `src/lib.rs`\n\nuse std::fmt;\n```\n"
            "```rust\n// File: `src/lib.rs`\n\nuse std::fmt;\n```\n"
        )
