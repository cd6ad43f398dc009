# beadwork

Supporting pieces of the `bw` issue tracker:

- `beadwork.writer` – a text stream wrapper with ANSI styles, width
  awareness and an indent stack;
- `beadwork.intent` – parsing and replaying the one-line "intents" that
  describe each change to an issue store;
- `beadwork.upgrade` – the `bw-upgrade` command, which installs the
  latest published `bw` binary.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Terminal output: `beadwork.writer`

`Writer` wraps any text stream. It can apply ANSI styles, reports the
width left after the current indent, and puts the current indent in
front of every new line it writes. It can be passed as `file=` to
`print`.

```python
import sys
from beadwork.writer import Style, color_writer, plain_writer, priority_style

w = color_writer(sys.stdout, 80)
w.write(w.style("DESCRIPTION", Style.BOLD) + "\n")
with w.indented(2):
    w.write("first line\nsecond line\n")   # both lines indented by two spaces
    print(w.width())                        # 78
w.write(w.style("P1", priority_style(1)) + "\n")
```

- `plain_writer(out)` returns text from `style()` unchanged and reports a
  width of 0, meaning "do not wrap".
- `color_writer(out, width)` wraps styled text in the style codes and a
  reset, and reports `width` minus the current indent, never less than 1.
- `style(text, *styles)` with no styles returns the text unchanged.
- `push(n)` and `pop()` change the indent by hand; `indented(n)` does both
  as a context manager. Popping an empty stack does nothing.
- `clear_line()` returns `"\r\033[K"` on a colour writer and `"\r"` on a
  plain one.
- `Style` holds the available styles: `BOLD`, `DIM`, `RED`, `BRIGHT_RED`,
  `YELLOW`, `CYAN`, `GREEN`, `STRIKETHROUGH`.
- `priority_style(p)` maps priorities 0–4 to `BRIGHT_RED`, `RED`,
  `YELLOW`, `CYAN` and `DIM`; any other priority is `DIM`.

## Intent replay: `beadwork.intent`

Each change to an issue store is committed with a short message such as

```
create bw-a1b2 p1 bug "Login crashes on timeout"
close bw-a1b2
reopen bw-a1b2
update bw-a1b2 status=in_progress assignee=agent-1 priority=1
link bw-a1b2 blocks bw-c3d4
unlink bw-a1b2 blocks bw-c3d4
label bw-a1b2 +frontend -wontfix
delete bw-a1b2
config default.priority=2
comment bw-a1b2 "looks good"
```

`replay(store, intents)` carries these out again, one by one, against any
object that satisfies the `IssueStore` protocol, and calls
`store.commit(intent)` after each one that succeeds. An intent that fails
— malformed, or rejected by the store — becomes a `ReplayError` (holding
`intent` and `cause`); the rest still take effect, and the list of
failures is returned. Empty intents, `init` and unknown verbs are skipped
without error.

Some details of the replay:

- `create` takes the title from the first quoted string, or else from the
  words after the type; the id in the intent is not reused, the store
  picks its own.
- `close` always passes an empty reason.
- `update` understands `status`, `assignee`, `priority`, `type`, `title`
  and `parent`; other keys, and words without `=`, are ignored. Values
  end at the next space unless quoted.

```python
from beadwork.intent import extract_quoted, parse_intent

parse_intent('create t-1 p1 bug "Login crashes"')
# ['create', 't-1', 'p1', 'bug', 'Login crashes']
extract_quoted('comment t-1 "looks good"')
# 'looks good'
```

`parse_intent` splits on spaces, keeps double-quoted runs together and
drops the quote characters; there is no escaping of quotes.

## Upgrading: `bw-upgrade`

```
bw-upgrade            # check, show the changelog, ask, then install
bw-upgrade --check    # only report whether a newer release exists
bw-upgrade --yes      # install without asking
```

Any other argument is an error. The command:

1. finds the file it was started from and whether that is a symlink;
2. fetches the latest release and compares its tag (a leading `v` is
   dropped; it must be three numeric parts) with the installed version of
   the `beadwork` distribution, taken as `0.0.0` when it is not installed;
3. prints the changelog entries newer than the installed version, up to
   and including the new one (a failure to fetch the changelog is
   ignored);
4. checks that the install directory is writable, asks for confirmation
   unless `--yes` was given, and downloads `beadwork_<version>_<os>_<arch>.tar.gz`
   (`.zip` on Windows), with a progress line on terminals;
5. takes the regular file `bw` (or `bw.exe` in a zip) out of the archive;
6. installs it: through a symlink it is written as `bw-<version>` next to
   the symlink's target and the symlink is switched over atomically,
   leaving the old binary in place; otherwise the file is replaced
   atomically. The new file is made executable;
7. runs the installed file with `--version` and prints what it reports.

The release repository is `beadwork/beadwork` unless the
`BEADWORK_REPOSITORY` environment variable names another.

From Python, `Upgrader` runs the same steps; each outside dependency
(release lookup, download, binary location, changelog, standard input,
current version, verification) is a field that can be replaced. The
steps are also available on their own: `parse_upgrade_args`,
`resolve_binary`, `resolve_binary_path`, `fetch_latest_release`,
`find_asset`, `download_asset`, `extract_binary`, `extract_from_tar_gz`,
`extract_from_zip`, `check_writable`, `install_direct`,
`install_symlink`, `valid_version`, `compare_versions`,
`fetch_changelog`, `parse_changelog`, `format_bytes` and `verify_binary`.
`Upgrader.run` and `main` report failures as `UpgradeError`; the
individual helpers may also raise `OSError` (for example
`check_writable` on a read-only directory).

```python
from beadwork.upgrade import compare_versions, format_bytes

compare_versions("0.3.0", "0.4.0")   # -1
format_bytes(1536)                   # '1.5 KB'
```

## What this package does not do

It does not contain an issue store. `replay` needs one supplied by the
caller through the `IssueStore` protocol; there is no storage of issues,
no synchronisation with a remote, and no `bw` commands for creating,
showing, listing or updating issues. The only command installed is
`bw-upgrade`.