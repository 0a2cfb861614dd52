"""
DevPilot Session

Explicitly constructed per workspace. Owns the vector store, conversation
history, providers, tools and the agent loop; nothing is shared between
sessions.
"""

import logging
from pathlib import Path

from .agent import AgentLoop, ConversationHistory, TurnResult
from .config import Settings, get_settings
from .context.assembler import ContextAssembler
from .context.embeddings import EmbeddingProvider
from .context.indexer import INDEX_FILE, SUMMARY_FILE, CodebaseIndexer, IndexResult
from .context.summary import ProjectAnalyzer, ProjectSummary, load_summary
from .context.vector_store import VectorStore
from .editor import EditorBridge, EditorState, HeadlessEditor
from .errors import ConfigurationError, ErrorReporter
from .llm.gateway import LLMGateway
from .terminal import TerminalCommandManager
from .tools import FileEditor, FileManager, TerminalClient, ToolDispatcher, WebScraper

logger = logging.getLogger(__name__)


class Session:
    """
    Usage:
        session = Session("/path/to/project")
        await session.initialize_codebase()
        result = await session.ask("Where is the config loaded?")
        await session.close()
    """

    def __init__(
        self,
        workspace_root: str | Path,
        settings: Settings | None = None,
        editor: EditorBridge | None = None,
    ):
        self.settings = settings or get_settings()
        self.workspace_root = Path(workspace_root).resolve()
        self.editor = editor or HeadlessEditor()
        self.reporter = ErrorReporter(self.editor)
        self.initializing = False

        self.store = VectorStore()
        self.history = ConversationHistory(self.settings.agent.history_limit)
        self.embedder = EmbeddingProvider(self.settings.embedding)
        self.terminal = TerminalCommandManager(self.settings.terminal, cwd=self.workspace_root)

        self.dispatcher = ToolDispatcher(
            [
                FileManager(self.workspace_root, self.editor),
                FileEditor(self.editor, self.workspace_root),
                TerminalClient(self.terminal),
                WebScraper(),
            ]
        )
        self.gateway = LLMGateway(
            self.settings.llm,
            self.reporter,
            catalogue=self.dispatcher.catalogue(),
            history_limit=self.settings.agent.history_limit,
        )
        self.assembler = ContextAssembler(
            self.store,
            self.embedder,
            summary_path=self.summary_path,
            k=self.settings.agent.context_results,
        )
        self.indexer = CodebaseIndexer(
            self.store, self.embedder, self.settings.index, self.editor, self.reporter
        )
        self.analyzer = ProjectAnalyzer(self.gateway)
        self.agent = AgentLoop(
            self.assembler, self.gateway, self.dispatcher, self.reporter, self.history
        )

    @property
    def state_dir(self) -> Path:
        return self.settings.index.state_path(self.workspace_root)

    @property
    def index_path(self) -> Path:
        return self.state_dir / INDEX_FILE

    @property
    def summary_path(self) -> Path:
        return self.state_dir / SUMMARY_FILE

    def load_index(self) -> bool:
        """Load the persisted index snapshot, if any"""
        loaded = self.store.load(self.index_path)
        if loaded:
            logger.info(f"Loaded {len(self.store)} documents from {self.index_path}")
        return loaded

    async def initialize_codebase(self) -> IndexResult | None:
        """
        Rebuild the index and, when missing, the project summary.

        Returns None when an initialization is already running. Indexing
        failures are reported and re-raised; a failed summary analysis is
        reported and initialization completes without a summary.
        """
        if self.initializing:
            logger.info("Initialization already in progress, skipping")
            return None

        self.initializing = True
        try:
            if not self.workspace_root.is_dir():
                error = ConfigurationError(f"No workspace folder found at {self.workspace_root}")
                self.reporter.handle(error, "Session.initialize_codebase")
                raise error

            try:
                self.state_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(f"Could not create {self.state_dir}: {e}")

            summary = load_summary(self.summary_path)
            if summary is not None:
                logger.info("Found existing project summary")

            self.editor.report_progress("Indexing codebase...")
            result = await self.indexer.index_workspace(self.workspace_root)

            if summary is None and not self.store.is_empty() and self.settings.index.analyze_summary:
                summary = await self._analyze()

            self.assembler.invalidate()
            self.assembler.remember_summary(summary)
            self.editor.show_info(
                f"Indexed {result.files_indexed} files ({result.chunks_created} chunks)"
            )
            return result
        finally:
            self.initializing = False

    async def _analyze(self) -> ProjectSummary | None:
        self.editor.report_progress("Analyzing codebase structure...")
        try:
            return await self.analyzer.analyze(self.indexer.file_list, self.summary_path)
        except Exception as e:
            self.reporter.handle(e, "Session.analyze")
            return None

    async def ask(
        self,
        prompt: str,
        editor_state: EditorState | None = None,
        answers: dict | None = None,
    ) -> TurnResult:
        editor_state = editor_state or EditorState(workspace_root=str(self.workspace_root))
        return await self.agent.process_prompt(prompt, editor_state, answers)

    async def search(self, query: str, k: int | None = None) -> list[str]:
        return await self.assembler.get_relevant_context(query, k)

    async def close(self) -> None:
        await self.terminal.close()
