# mdbinder

Tools for books written as a set of Markdown files that a `SUMMARY.md`
table of contents ties together.

## What it provides

- **Summary parsing** (`mdbinder.summary`). `parse_summary(text)` turns a
  `SUMMARY.md` into a `Summary` that holds an optional title and the
  prefix, numbered and suffix chapters. The items are `Link`, `Separator`
  and `PartTitle`. Numbered chapters get a `SectionNumber`, which prints as
  `1.2.`. Numbering carries on across separators and titled parts. A link
  with an empty target (`- [Draft]()`) becomes a draft chapter, and
  `%20` in a target is read as a space. Malformed input raises
  `SummaryParseError`, and the message gives the line and column.
- **Markdown events** (`mdbinder.markdown_events`). `parse_events(text)`
  turns CommonMark into a flat stream of `Event`s, each with an
  `EventKind`. `stringify_events(events)` keeps only the plain text.
- **Book loading** (`mdbinder.book`). `load_book(src_dir, create_missing)`
  reads every chapter named in `src_dir/SUMMARY.md` and returns a `Book`.
  If `create_missing` is true, it first creates a `# Name` stub for each
  linked file that does not exist. A leading UTF-8 byte order mark is
  removed from chapter content. Problems raise `BookError`.
  - Iterating over a `Book` walks its items depth first.
  - `Book.for_each(func)` visits nested items before their chapter.
  - `Book.to_dict()` and `Book.from_dict()` convert a book to and from
    JSON-ready data.
- **Preprocessor ordering** (`mdbinder.preprocessors`).
  `determine_preprocessors(config)` reads the `preprocessor` table of a
  book configuration given as a dict, for example parsed TOML. It returns
  `PreprocessorSpec`s.
  - The built-in `links` and `index` preprocessors are included unless
    `build.use-default-preprocessors` is false.
  - `before` and `after` lists set the order. Ties are broken by name.
  - Names in those lists that are not configured are skipped with a
    warning.
  - A cycle raises `PipelineError`.
  - A custom preprocessor's command is its `command` key, or
    `mdbinder-<name>` if there is none.
  - `preprocessor_should_run(...)` decides whether a preprocessor runs for
    a given renderer.
- **Renderer selection** (`mdbinder.pipeline`).
  `determine_renderers(config)` returns a `RendererSpec` for each entry of
  the `output` table, in name order. It returns HTML alone if the table is
  empty. `build_dir_for(root, build_dir, renderer_count, backend_name)`
  gives each renderer its own subdirectory when there is more than one.
- **Ignore rules** (`mdbinder.gitignore`).
  - `Gitignore(root, lines)` or `Gitignore.from_file(path)` matches paths
    against `.gitignore` rules, negations included.
  - `find_gitignore(book_root)` finds the nearest `.gitignore` upwards
    from the book root.
  - `filter_ignored_files(ignore, paths)` drops the paths the rules
    exclude.

## Example

```python
from mdbinder.summary import parse_summary
from mdbinder.book import load_book
from mdbinder.preprocessors import determine_preprocessors

summary = parse_summary("# Summary\n\n- [Intro](intro.md)\n  - [Details](details.md)\n")
for link in summary.numbered_chapters:
    print(link.number, link.name)

book = load_book("my-book/src", create_missing=True)
for item in book:
    print(item)

print([p.name for p in determine_preprocessors({})])  # ['index', 'links']
```

## Commands

Both commands read JSON on standard input.

```
mdbinder-nop-preprocessor supports html
mdbinder-nop-preprocessor < input.json
```

**`mdbinder-nop-preprocessor`**

- `supports <renderer>` exits with status 0 for any renderer except
  `not-supported`, which gets 1.
- With no subcommand, it reads a `[context, book]` pair and writes the
  book back to standard output unchanged.
  - It warns if the context's `mdbook_version` does not match the version
    it expects.
  - It fails with `Boom!!1!` if `preprocessor.nop-preprocessor` in the
    context's config has a `blow-up` key.

```
mdbinder-wordcount < render-context.json
```

**`mdbinder-wordcount`**

It reads a render context, which is an object with `book`, `destination`
and `config`. It prints `name: count` for each chapter and writes the same
lines to `wordcounts.txt` in the destination. It takes its options from the
`output.wordcount` table:

- `ignores` lists chapter names to skip.
- `deny-odds` makes it exit with status 1 at the first chapter with an odd
  word count.

## What it does not do

- The package does not render books. There is no HTML or Markdown output.
  Renderers and preprocessors are only chosen and ordered, as specs.
- It has no command that builds, serves or tests a book.
- It does not watch files for changes. The `.gitignore` matching is
  available, but nothing polls the disk.

## Installation and tests

```
pip install .
pip install .[test]
pytest
```