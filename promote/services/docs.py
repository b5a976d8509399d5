from __future__ import annotations

from pathlib import Path

from promote.core.result import Err, Ok, Result
from promote.platform.files import reset_dir
from promote.services.archives import ArchiveError, extract_subtree, has_member_dir
from promote.services.artifacts import ArtifactSet
from promote.services.errors import PromoteError

DOCS_COMPONENT = "rust-docs"
COMPILER_DOCS_COMPONENT = "rustc-docs"
COMPILER_DOCS_DIR = "nightly-rustc"

# Where the HTML lives inside <tarball-prefix>/<component>/
_HTML_DIR = "share/doc/rust/html"


def docs_tarball_prefix(component: str, label: str, target: str) -> str:
    return f"{component}-{label}-{target}"


def build_docs_tree(
    *,
    artifacts: ArtifactSet,
    label: str,
    target: str,
    docs_dir: Path,
) -> Result[Path, PromoteError]:
    """Lay out the HTML docs for one platform in a fresh `docs_dir`.

    The standard docs land at the root. Compiler-internal docs, when the
    release ships them, go under ``nightly-rustc/``.
    """
    prefix = docs_tarball_prefix(DOCS_COMPONENT, label, target)
    tarball = artifacts.path(f"{prefix}.tar.gz")
    if not tarball.is_file():
        return Err(
            PromoteError(
                kind="io_failed",
                message=f"documentation tarball {tarball.name} is not staged",
                hint=str(artifacts.root),
            )
        )

    try:
        reset_dir(docs_dir)
        extract_subtree(tarball, f"{prefix}/{DOCS_COMPONENT}/{_HTML_DIR}", docs_dir)

        compiler_prefix = docs_tarball_prefix(COMPILER_DOCS_COMPONENT, label, target)
        compiler_tarball = artifacts.path(f"{compiler_prefix}.tar.gz")
        if compiler_tarball.is_file():
            html = f"{compiler_prefix}/{COMPILER_DOCS_COMPONENT}/{_HTML_DIR}"
            # Newer tarballs nest everything in an extra rustc/ directory.
            if has_member_dir(compiler_tarball, f"{html}/rustc"):
                html = f"{html}/rustc"
            extract_subtree(compiler_tarball, html, docs_dir / COMPILER_DOCS_DIR)
    except ArchiveError as e:
        return Err(PromoteError(kind="io_failed", message=str(e)))
    except OSError as e:
        return Err(PromoteError(kind="io_failed", message=f"cannot prepare {docs_dir}: {e}"))

    return Ok(docs_dir)
