"""Upgrading the bw binary to the latest published release."""

from __future__ import annotations

import io
import json
import os
import platform
import posixpath
import re
import shutil
import stat
import subprocess
import sys
import tarfile
import tempfile
import urllib.error
import urllib.request
import zipfile
from dataclasses import dataclass, field
from importlib import metadata
from typing import Callable, Optional, TextIO

from beadwork.writer import Style, Writer, color_writer, plain_writer

__all__ = [
    "Asset",
    "Release",
    "UpgradeArgs",
    "UpgradeError",
    "Upgrader",
    "parse_upgrade_args",
    "resolve_binary",
    "resolve_binary_path",
    "fetch_latest_release",
    "find_asset",
    "download_asset",
    "extract_binary",
    "extract_from_tar_gz",
    "extract_from_zip",
    "check_writable",
    "install_direct",
    "install_symlink",
    "valid_version",
    "compare_versions",
    "fetch_changelog",
    "parse_changelog",
    "format_bytes",
    "verify_binary",
    "main",
]

_DEFAULT_REPOSITORY = "beadwork/beadwork"
_RELEASE_URL = "https://api.github.com/repos/{repo}/releases/latest"
_CHANGELOG_URL = "https://raw.githubusercontent.com/{repo}/v{version}/CHANGELOG.md"
_CHUNK_SIZE = 32 * 1024
_ATOI = re.compile(r"[+-]?[0-9]+")


class UpgradeError(Exception):
    """An upgrade step that could not be completed."""


@dataclass(frozen=True)
class Asset:
    """A downloadable file attached to a release."""

    name: str
    url: str = ""
    size: int = 0


@dataclass(frozen=True)
class Release:
    """A published release and its assets."""

    tag_name: str
    assets: list[Asset] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict) -> "Release":
        assets = [
            Asset(
                name=item.get("name", ""),
                url=item.get("browser_download_url", ""),
                size=int(item.get("size") or 0),
            )
            for item in data.get("assets") or []
        ]
        return cls(tag_name=data.get("tag_name", ""), assets=assets)


@dataclass(frozen=True)
class UpgradeArgs:
    """Options accepted by the upgrade command."""

    check: bool = False
    yes: bool = False


def parse_upgrade_args(raw: list[str]) -> UpgradeArgs:
    """Parse ``--check`` and ``--yes``; anything else is an error."""
    check = yes = False
    for arg in raw:
        if arg == "--check":
            check = True
        elif arg == "--yes":
            yes = True
        else:
            raise UpgradeError(f"unknown argument: {arg}")
    return UpgradeArgs(check=check, yes=yes)


def _repository() -> str:
    return os.environ.get("BEADWORK_REPOSITORY", _DEFAULT_REPOSITORY)


def _goos() -> str:
    plat = sys.platform
    if plat.startswith("linux"):
        return "linux"
    if plat.startswith("win") or plat.startswith("cygwin"):
        return "windows"
    if plat.startswith("freebsd"):
        return "freebsd"
    return plat


_ARCHES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
}


def _goarch() -> str:
    machine = platform.machine().lower()
    return _ARCHES.get(machine, machine)


def _asset_name(version: str) -> str:
    goos = _goos()
    ext = ".zip" if goos == "windows" else ".tar.gz"
    return f"beadwork_{version}_{goos}_{_goarch()}{ext}"


def _installed_version() -> str:
    try:
        return metadata.version("beadwork")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def resolve_binary_path(exec_path: str) -> tuple[str, bool, str]:
    """Return the path, whether it is itself a symlink, and its resolved target."""
    try:
        target = os.path.realpath(exec_path, strict=True)
    except OSError as exc:
        raise UpgradeError(f"cannot resolve binary path: {exc}") from exc
    try:
        info = os.lstat(exec_path)
    except OSError as exc:
        raise UpgradeError(f"cannot stat binary: {exc}") from exc
    return exec_path, stat.S_ISLNK(info.st_mode), target


def resolve_binary() -> tuple[str, bool, str]:
    """Locate the running command and resolve it as resolve_binary_path does."""
    program = sys.argv[0] if sys.argv else ""
    found = shutil.which(program) if program else None
    path = found or program
    if not path:
        raise UpgradeError("cannot determine binary path")
    return resolve_binary_path(os.path.abspath(path))


def fetch_latest_release() -> Release:
    """Fetch the description of the latest published release."""
    url = _RELEASE_URL.format(repo=_repository())
    try:
        with urllib.request.urlopen(url) as resp:
            body = resp.read()
    except urllib.error.HTTPError as exc:
        raise UpgradeError(f"GitHub API returned {exc.code}") from exc
    try:
        return Release.from_json(json.loads(body))
    except (ValueError, TypeError, AttributeError) as exc:
        raise UpgradeError(f"invalid response: {exc}") from exc


def find_asset(release: Release, version: str) -> Asset:
    """Return the release asset built for this platform."""
    want = _asset_name(version)
    for asset in release.assets:
        if asset.name == want:
            return asset
    raise UpgradeError(
        f"no release asset for {_goos()}/{_goarch()} (looking for {want})"
    )


def download_asset(url: str, size: int, out: Writer) -> bytes:
    """Download a file, reporting progress on terminals."""
    try:
        resp = urllib.request.urlopen(url)
    except urllib.error.HTTPError as exc:
        raise UpgradeError(f"HTTP {exc.code}") from exc
    with resp:
        status = getattr(resp, "status", 200)
        if status != 200:
            raise UpgradeError(f"HTTP {status}")
        total = size
        length = resp.headers.get("Content-Length") if resp.headers else None
        if length and length.isdigit() and int(length) > 0:
            total = int(length)

        is_tty = out.width() > 0
        buf = bytearray()
        with out.indented(2):
            while True:
                chunk = resp.read(_CHUNK_SIZE)
                if not chunk:
                    break
                buf.extend(chunk)
                if is_tty and total > 0:
                    progress = (
                        f"{format_bytes(len(buf))}/{format_bytes(total)} "
                        f"({len(buf) * 100 // total}%)"
                    )
                    out.write(out.clear_line() + out.style(progress, Style.DIM))
            done = out.style("done", Style.GREEN)
            if is_tty and total > 0:
                out.write(f"{out.clear_line()}{format_bytes(len(buf))} {done}\n")
            else:
                out.write(f"{format_bytes(len(buf))} {done}\n")
    return bytes(buf)


def extract_binary(asset_name: str, data: bytes) -> bytes:
    """Extract the bw binary from a .zip or .tar.gz archive."""
    if asset_name.endswith(".zip"):
        return extract_from_zip(data)
    return extract_from_tar_gz(data)


def extract_from_tar_gz(data: bytes) -> bytes:
    """Return the contents of the regular file named bw in a gzipped tarball."""
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as archive:
            for member in archive:
                if posixpath.basename(member.name) == "bw" and member.isreg():
                    handle = archive.extractfile(member)
                    if handle is not None:
                        return handle.read()
    except (tarfile.TarError, OSError, EOFError) as exc:
        raise UpgradeError(str(exc)) from exc
    raise UpgradeError("bw binary not found in archive")


def extract_from_zip(data: bytes) -> bytes:
    """Return the contents of bw or bw.exe in a zip archive."""
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            for name in archive.namelist():
                if posixpath.basename(name) in ("bw", "bw.exe"):
                    return archive.read(name)
    except (zipfile.BadZipFile, OSError) as exc:
        raise UpgradeError(str(exc)) from exc
    raise UpgradeError("bw binary not found in archive")


def check_writable(directory: str) -> None:
    """Raise OSError unless a file can be created in directory."""
    with tempfile.NamedTemporaryFile(dir=directory, prefix=".bw-upgrade-check-"):
        pass


def _write_executable(directory: str, binary_data: bytes) -> str:
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".bw-upgrade-")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(binary_data)
        os.chmod(tmp_path, 0o755)
    except BaseException:
        _remove_quietly(tmp_path)
        raise
    return tmp_path


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except OSError:
        pass


def install_direct(exec_path: str, binary_data: bytes) -> None:
    """Atomically replace the file at exec_path with an executable binary."""
    tmp_path = _write_executable(os.path.dirname(exec_path), binary_data)
    try:
        os.replace(tmp_path, exec_path)
    except OSError:
        _remove_quietly(tmp_path)
        raise


def install_symlink(
    link_path: str,
    current_target: str,
    target_dir: str,
    version: str,
    binary_data: bytes,
) -> None:
    """Install bw-<version> beside the current binary and repoint the symlink.

    The previous binary is left in place.
    """
    new_binary = os.path.join(target_dir, f"bw-{version}")
    tmp_path = _write_executable(target_dir, binary_data)
    try:
        os.replace(tmp_path, new_binary)
    except OSError:
        _remove_quietly(tmp_path)
        raise

    tmp_link = link_path + ".tmp"
    _remove_quietly(tmp_link)
    try:
        os.symlink(new_binary, tmp_link)
    except OSError as exc:
        raise UpgradeError(f"create symlink: {exc}") from exc
    try:
        os.replace(tmp_link, link_path)
    except OSError as exc:
        _remove_quietly(tmp_link)
        raise UpgradeError(f"update symlink: {exc}") from exc


def valid_version(version: str) -> bool:
    """True for a version of exactly three numeric dot-separated parts."""
    parts = version.split(".")
    return len(parts) == 3 and all(_ATOI.fullmatch(p) for p in parts)


def _atoi(text: str) -> int:
    return int(text) if _ATOI.fullmatch(text) else 0


def compare_versions(a: str, b: str) -> int:
    """Compare two three-part versions, returning -1, 0 or 1."""
    a_parts = a.split(".") + ["0"] * 3
    b_parts = b.split(".") + ["0"] * 3
    for a_part, b_part in zip(a_parts[:3], b_parts[:3]):
        left, right = _atoi(a_part), _atoi(b_part)
        if left != right:
            return -1 if left < right else 1
    return 0


def fetch_changelog(version: str) -> str:
    """Fetch the changelog published with a release."""
    url = _CHANGELOG_URL.format(repo=_repository(), version=version)
    try:
        with urllib.request.urlopen(url) as resp:
            return resp.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as exc:
        raise UpgradeError(f"HTTP {exc.code}") from exc


def parse_changelog(content: str, from_version: str, to_version: str) -> str:
    """Return the changelog sections for versions in (from_version, to_version]."""
    kept: list[str] = []
    include = False
    for line in content.split("\n"):
        if line.startswith("## "):
            fields = line[3:].split()
            version = fields[0] if fields else ""
            if not valid_version(version):
                include = False
                continue
            include = (
                compare_versions(version, from_version) > 0
                and compare_versions(version, to_version) <= 0
            )
        if include:
            kept.append(line + "\n")
    return "".join(kept).rstrip("\n")


def format_bytes(n: int) -> str:
    """Render a byte count as B, KB or MB."""
    if n >= 1 << 20:
        return f"{n / (1 << 20):.1f} MB"
    if n >= 1 << 10:
        return f"{n / (1 << 10):.1f} KB"
    return f"{n} B"


def verify_binary(exec_path: str) -> str:
    """Run the installed binary with --version and return its output."""
    result = subprocess.run(
        [exec_path, "--version"], capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


_FAILURES = (OSError, ValueError, UpgradeError, subprocess.SubprocessError)


@dataclass
class Upgrader:
    """The upgrade command, with each outside dependency replaceable."""

    fetch_release: Callable[[], Release] = fetch_latest_release
    download_asset: Callable[[str, int, Writer], bytes] = download_asset
    resolve_binary: Callable[[], tuple[str, bool, str]] = resolve_binary
    fetch_changelog: Callable[[str], str] = fetch_changelog
    stdin: Optional[TextIO] = None
    current_version: Callable[[], str] = _installed_version
    verify: Callable[[str], str] = verify_binary

    def run(self, args: list[str], out: Writer) -> None:
        """Check for, and unless told otherwise install, a newer release."""
        options = parse_upgrade_args(args)
        exec_path, symlink, target_path = self.resolve_binary()

        try:
            release = self.fetch_release()
        except _FAILURES as exc:
            raise UpgradeError(f"failed to check for updates: {exc}") from exc

        latest = release.tag_name.removeprefix("v")
        if not valid_version(latest):
            raise UpgradeError(f"invalid version from release: {release.tag_name}")

        current = self.current_version()
        if compare_versions(current, latest) >= 0:
            out.write(f"bw {out.style(current, Style.DIM)} (up to date)\n")
            return

        out.write(
            f"bw {out.style(current, Style.DIM)} {out.style('→', Style.DIM)} "
            f"{out.style(latest, Style.BOLD)} available\n"
        )
        self._show_changelog(out, current, latest)

        if options.check:
            return

        asset = find_asset(release, latest)
        install_dir = os.path.dirname(target_path if symlink else exec_path)
        try:
            check_writable(install_dir)
        except OSError as exc:
            raise UpgradeError(f"no write permission to {install_dir}: {exc}") from exc

        if not options.yes:
            out.write("\ndownload and install? [y/N] ")
            stdin = self.stdin if self.stdin is not None else sys.stdin
            answer = stdin.readline().strip().lower()
            if answer not in ("y", "yes"):
                out.write("cancelled\n")
                return

        out.write(f"downloading {out.style(asset.name, Style.CYAN)}...\n")
        try:
            archive = self.download_asset(asset.url, asset.size, out)
        except _FAILURES as exc:
            raise UpgradeError(f"download failed: {exc}") from exc

        out.write("extracting binary from archive...\n")
        try:
            binary = extract_binary(asset.name, archive)
        except UpgradeError as exc:
            raise UpgradeError(f"extract failed: {exc}") from exc

        try:
            if symlink:
                out.write(
                    f"installing {out.style('bw-' + latest, Style.BOLD)} → "
                    f"{out.style(exec_path, Style.CYAN)} (symlink)\n"
                )
                install_symlink(exec_path, target_path, install_dir, latest, binary)
            else:
                out.write(f"replacing {out.style(exec_path, Style.CYAN)}...\n")
                install_direct(exec_path, binary)
        except (OSError, UpgradeError) as exc:
            raise UpgradeError(f"install failed: {exc}") from exc

        out.write("verifying... ")
        try:
            reported = self.verify(exec_path)
        except _FAILURES as exc:
            raise UpgradeError(f"installed binary failed verification: {exc}") from exc
        out.write(out.style(reported, Style.GREEN) + "\n")

    def _show_changelog(self, out: Writer, current: str, latest: str) -> None:
        try:
            content = self.fetch_changelog(latest)
        except _FAILURES:
            return
        parsed = parse_changelog(content, current, latest)
        if not parsed:
            return
        out.write("\n")
        with out.indented(2):
            for line in parsed.split("\n"):
                if line.startswith("## "):
                    out.write(out.style(line[3:], Style.BOLD) + "\n")
                else:
                    out.write(line + "\n")


def main(argv: Optional[list[str]] = None) -> int:
    """Run the upgrade command and return an exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if sys.stdout.isatty():
        out = color_writer(sys.stdout, shutil.get_terminal_size().columns)
    else:
        out = plain_writer(sys.stdout)
    try:
        Upgrader().run(args, out)
    except UpgradeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0