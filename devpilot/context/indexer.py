"""
Codebase indexer

Walks a workspace, skips ignored paths, chunks every recognised text file by
whole lines, embeds each chunk and rebuilds the vector store from scratch.
The rebuilt store and a directory-tree snapshot are persisted to the
project-local state directory.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import pathspec

from ..config import IndexSettings, get_index_settings
from ..editor import EditorBridge
from ..errors import ErrorReporter, StorageError
from .embeddings import EmbeddingProvider
from .vector_store import Document, VectorStore

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"
TREE_FILE = "tree.json"
SUMMARY_FILE = "summary.json"

# Standard folders and files to ignore across languages/frameworks
STANDARD_IGNORES: dict[str, list[str]] = {
    "general": [
        ".git", ".svn", ".hg",
        ".vscode", ".idea", ".vs",
        "build", "dist", "out", "target",
        "coverage", ".nyc_output",
        ".DS_Store", "Thumbs.db",
        "tmp", "temp", "logs", "log",
        ".env", ".env.local", ".env.*",
    ],
    "node": ["node_modules", ".npm", ".yarn", ".pnpm-store"],
    "python": [
        "__pycache__", "*.pyc", ".pytest_cache", ".mypy_cache", ".tox",
        ".venv", "venv", "env", "ENV", "htmlcov", "*.egg-info",
    ],
    "java": ["target", ".gradle", "build", ".m2", "*.class", "bin"],
    "dotnet": ["bin", "obj", "packages", ".vs", "TestResults"],
    "rust": ["target", "Cargo.lock", ".cargo"],
    "go": ["vendor", "bin", "pkg"],
    "ruby": ["vendor/bundle", ".bundle", "coverage"],
}

TEXT_EXTENSIONS = {
    ".js", ".jsx", ".ts", ".tsx", ".py", ".java", ".c", ".cpp", ".h",
    ".hpp", ".cs", ".php", ".rb", ".go", ".rs", ".swift", ".kt", ".scala",
    ".html", ".css", ".scss", ".sass", ".less", ".json", ".xml", ".yaml",
    ".yml", ".md", ".txt", ".env", ".sh", ".bash", ".zsh", ".fish", ".toml",
}

TEXT_FILENAMES = {
    ".gitignore", ".dockerignore", ".editorconfig", ".eslintrc",
    ".prettierrc", ".babelrc",
}

LANGUAGES = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".c": "c",
    ".cpp": "cpp",
    ".h": "c",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".php": "php",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".sass": "sass",
    ".less": "less",
    ".json": "json",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
    ".toml": "toml",
}


@dataclass
class IndexResult:
    """Statistics for one indexing pass"""

    files_seen: int = 0
    files_indexed: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    chunks_created: int = 0
    duration_s: float = 0.0
    failures: list[str] = field(default_factory=list)


def is_text_file(path: str | Path) -> bool:
    p = Path(path)
    return p.name in TEXT_FILENAMES or p.suffix.lower() in TEXT_EXTENSIONS


def detect_language(path: str | Path) -> str:
    return LANGUAGES.get(Path(path).suffix.lower(), "plaintext")


def chunk_document(document: Document, max_chunk_size: int = 1500) -> list[Document]:
    """
    Split a document into line-aligned chunks.

    Whole lines accumulate until the next one would push the chunk past
    max_chunk_size. A single line longer than the budget gets a chunk of
    its own. Concatenating the chunk contents gives back the original text.
    """
    chunks: list[Document] = []
    current: list[str] = []
    size = 0
    start_line = 1

    def flush(end_line: int) -> None:
        chunks.append(
            Document(
                kind="chunk",
                path=document.path,
                language=document.language,
                content="".join(current),
                metadata={
                    "source_kind": document.kind,
                    "chunk_index": len(chunks),
                    "start_line": start_line,
                    "end_line": end_line,
                },
            )
        )

    lines = document.content.splitlines(keepends=True)
    for number, line in enumerate(lines, start=1):
        if current and size + len(line) > max_chunk_size:
            flush(number - 1)
            current, size, start_line = [], 0, number
        current.append(line)
        size += len(line)

    if current:
        flush(len(lines))

    return chunks


class IgnoreRules:
    """Standard ignores plus .gitignore patterns, matched gitignore-style"""

    def __init__(self, gitignore_patterns: list[str] | None = None, extra: list[str] | None = None):
        self.gitignore_patterns = list(gitignore_patterns or [])
        standard = [p for group in STANDARD_IGNORES.values() for p in group]
        self._spec = pathspec.GitIgnoreSpec.from_lines(
            standard + list(extra or []) + self.gitignore_patterns
        )

    def matches(self, relative_path: str, is_dir: bool = False) -> bool:
        if is_dir:
            return self._spec.match_file(relative_path.rstrip("/") + "/")
        return self._spec.match_file(relative_path)


def read_gitignore(root: str | Path) -> list[str]:
    try:
        content = (Path(root) / ".gitignore").read_text(encoding="utf-8")
    except OSError:
        return []
    return [line.strip() for line in content.splitlines() if line.strip() and not line.strip().startswith("#")]


class CodebaseIndexer:
    """
    Full-rebuild indexer.

    Every call to index_workspace() discards the previous store contents.
    Files are processed one at a time; a file that cannot be read or
    embedded is logged and skipped.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingProvider,
        settings: IndexSettings | None = None,
        editor: EditorBridge | None = None,
        reporter: ErrorReporter | None = None,
    ):
        self.store = store
        self.embedder = embedder
        self.settings = settings or get_index_settings()
        self.editor = editor
        self.reporter = reporter or ErrorReporter(editor)
        self.file_list: list[str] = []

    def state_dir(self, root: str | Path) -> Path:
        return self.settings.state_path(root)

    async def index_workspace(self, root: str | Path) -> IndexResult:
        """Rebuild the index for root; failures are reported and re-raised"""
        return await self.reporter.run(
            lambda: self._index_workspace(Path(root)),
            "CodebaseIndexer.index_workspace",
        )

    async def _index_workspace(self, root: Path) -> IndexResult:
        start_time = time.time()
        result = IndexResult()
        rules = IgnoreRules(read_gitignore(root), extra=[self.settings.state_dir])

        self.store.reset()
        files = await self.list_files(root, rules)
        self.file_list = [f.relative_to(root).as_posix() for f in files]
        logger.info(f"Indexing {len(files)} files in {root}")

        for file_path in files:
            result.files_seen += 1
            if not is_text_file(file_path):
                result.files_skipped += 1
                continue

            try:
                created = await self.index_file(root, file_path)
            except Exception as e:
                logger.warning(f"Failed to index {file_path}: {e}")
                result.files_failed += 1
                result.failures.append(file_path.relative_to(root).as_posix())
                continue

            result.files_indexed += 1
            result.chunks_created += created
            if self.editor is not None:
                self.editor.report_progress(f"Indexed {file_path.relative_to(root).as_posix()}")

        if self.store.is_empty():
            logger.warning("No data to save in vector store, writing an empty snapshot")
        self.store.save(self.state_dir(root) / INDEX_FILE)

        await self.save_tree_snapshot(root, rules)

        result.duration_s = time.time() - start_time
        logger.info(
            f"Indexing completed: {result.chunks_created} chunks from "
            f"{result.files_indexed} files in {result.duration_s:.2f}s"
        )
        return result

    async def index_file(self, root: Path, file_path: Path) -> int:
        """Chunk, embed and store one file; returns the number of chunks"""
        content = file_path.read_text(encoding="utf-8")
        relative = file_path.relative_to(root).as_posix()
        stat = file_path.stat()

        document = Document(
            kind="file",
            path=relative,
            language=detect_language(file_path),
            content=content,
            metadata={
                "size": len(content),
                "last_modified": datetime.fromtimestamp(stat.st_mtime).isoformat(),
                "extension": file_path.suffix,
            },
        )

        chunks = chunk_document(document, self.settings.chunk_size)
        # All chunks of a file enter the store together or not at all
        vectors = [await self.embedder.embed(f"{chunk.header}\n\n{chunk.content}") for chunk in chunks]
        for chunk, vector in zip(chunks, vectors):
            self.store.add(chunk, vector)

        logger.debug(f"Indexed file: {relative} ({len(chunks)} chunks)")
        return len(chunks)

    async def list_files(self, root: Path, rules: IgnoreRules) -> list[Path]:
        """All non-ignored files under root, depth-first, sorted per directory"""
        files: list[Path] = []

        async def walk(directory: Path, depth: int) -> None:
            if depth >= self.settings.max_depth:
                return
            try:
                entries = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError as e:
                logger.warning(f"Error reading directory {directory}: {e}")
                return

            for entry in entries:
                relative = entry.relative_to(root).as_posix()
                if entry.is_symlink() and entry.is_dir():
                    logger.debug(f"Skipping symlinked directory {relative}")
                elif entry.is_dir():
                    if not rules.matches(relative, is_dir=True):
                        await walk(entry, depth + 1)
                elif entry.is_file() and not rules.matches(relative):
                    files.append(entry)

        await walk(root, 0)
        return files

    async def directory_tree(self, directory: Path, root: Path, rules: IgnoreRules, depth: int = 0) -> dict[str, Any] | None:
        if depth >= self.settings.max_depth:
            return None

        tree: dict[str, Any] = {"name": directory.name, "type": "directory", "children": []}
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.warning(f"Error reading directory {directory}: {e}")
            return tree

        for entry in entries:
            relative = entry.relative_to(root).as_posix()
            if entry.is_dir():
                if entry.is_symlink() or rules.matches(relative, is_dir=True):
                    continue
                subtree = await self.directory_tree(entry, root, rules, depth + 1)
                if subtree:
                    tree["children"].append(subtree)
            elif entry.is_file() and not rules.matches(relative):
                tree["children"].append(
                    {
                        "name": entry.name,
                        "type": "file",
                        "extension": entry.suffix,
                        "relativePath": relative,
                    }
                )
        return tree

    async def save_tree_snapshot(self, root: Path, rules: IgnoreRules) -> dict[str, Any]:
        snapshot = {
            "directoryTree": await self.directory_tree(root, root, rules),
            "ignoredPatterns": rules.gitignore_patterns,
            "standardIgnores": STANDARD_IGNORES,
        }
        target = self.state_dir(root) / TREE_FILE
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to save directory tree to {target}", cause=e) from e
        return snapshot
