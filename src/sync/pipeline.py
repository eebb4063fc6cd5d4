"""End-to-end sync run.

SyncPipeline wires the stages together:

1. Discover markdown documents and other files under the source directory
2. Extract frontmatter and build the cross-document index
3. Evaluate macros and convert every document (concurrently)
4. Build the page tree and fingerprint it
5. Query the space, reconcile, and execute the plan (unless dry run)

Per-document failures never stop the run; they are collected in the
RunReport and the document is left out of the plan.
"""

import logging
import os
import posixpath
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Tuple

from src.content_converter.markdown_converter import DocumentConverter, first_heading
from src.content_converter.models import ConversionResult
from src.document.diagnostics import DocumentWarning
from src.document.errors import ConversionError, DocumentError
from src.document.frontmatter_handler import FrontmatterHandler
from src.document.models import Document
from src.macros.evaluator import MacroContext, MacroEvaluator
from src.macros.index import CrossDocumentIndex, PageSummary
from src.macros.users import UserDirectory
from src.page_graph.hierarchy_builder import PageGraphBuilder
from src.page_graph.models import PageGraph

from .fingerprint import FingerprintComputer
from .models import OperationPlan
from .plan_executor import ExecutionReport, PlanExecutor
from .reconciler import ReconciliationEngine
from .remote_state import RemoteStateReader

if TYPE_CHECKING:
    from src.cli.models import SyncConfig
    from src.confluence_client.api_wrapper import APIWrapper

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


@dataclass
class RunReport:
    """Outcome of a sync run.

    Attributes:
        documents: Number of markdown documents found
        errors: Documents that could not be converted or placed in the tree
        warnings: Non-fatal diagnostics from conversion
        plan: Operations computed for the space
        execution: Results of applying the plan (None for a dry run)
    """
    documents: int = 0
    errors: List[DocumentError] = field(default_factory=list)
    warnings: List[DocumentWarning] = field(default_factory=list)
    plan: OperationPlan = field(default_factory=OperationPlan)
    execution: Optional[ExecutionReport] = None
    graph: Optional[PageGraph] = None

    @property
    def dry_run(self) -> bool:
        return self.execution is None

    @property
    def ok(self) -> bool:
        """True if every document converted and every operation applied."""
        if self.errors:
            return False
        return self.execution is None or not self.execution.failures


@dataclass
class SourceTree:
    """Relative paths found under the source directory."""
    documents: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)


class SyncPipeline:
    """Runs one sync of a markdown tree into a Confluence space.

    Args:
        config: Run settings
        api: Confluence API wrapper

    Example:
        >>> pipeline = SyncPipeline(config, APIWrapper(Authenticator()))
        >>> report = pipeline.run(dry_run=True)
        >>> len(report.plan.changes)
        3
    """

    def __init__(self, config: "SyncConfig", api: "APIWrapper"):
        self.config = config
        self.api = api
        self.builder = PageGraphBuilder(index_name=config.index_name, source_dir=config.source_dir)

    # Discovery

    def discover(self) -> SourceTree:
        """Walk the source directory, skipping hidden entries and the macro directory."""
        tree = SourceTree()
        root = self.config.source_dir
        macro_dir = posixpath.normpath(self.config.macro_dir) if self.config.macro_dir else None

        for directory, subdirs, filenames in os.walk(root):
            relative_dir = os.path.relpath(directory, root).replace(os.sep, "/")
            relative_dir = "" if relative_dir == "." else relative_dir
            subdirs[:] = sorted(
                name for name in subdirs
                if not name.startswith(".")
                and posixpath.join(relative_dir, name) != macro_dir
            )
            for filename in sorted(filenames):
                if filename.startswith("."):
                    continue
                path = posixpath.join(relative_dir, filename) if relative_dir else filename
                if filename.lower().endswith(MARKDOWN_SUFFIX):
                    tree.documents.append(path)
                else:
                    tree.files.append(path)

        logger.info(f"Found {len(tree.documents)} documents and {len(tree.files)} files in {root}")
        return tree

    def load_documents(self, paths: List[str]) -> Tuple[List[Document], List[DocumentError]]:
        """Read each document and extract its frontmatter."""
        documents: List[Document] = []
        errors: List[DocumentError] = []
        for path in paths:
            full_path = os.path.join(self.config.source_dir, path)
            try:
                with open(full_path, "r", encoding="utf-8") as f:
                    content = f.read()
                documents.append(FrontmatterHandler.load(path, content))
            except (OSError, UnicodeDecodeError) as e:
                error = ConversionError(path, f"cannot read file: {e}")
                logger.error(str(error))
                errors.append(error)
            except DocumentError as e:
                logger.error(str(e))
                errors.append(e)
        return documents, errors

    def build_index(self, documents: List[Document], files: List[str]) -> CrossDocumentIndex:
        """Index titles, labels and metadata of every document before conversion."""
        summaries = []
        for document in documents:
            title = document.front_matter.title or first_heading(document.body)
            if not title:
                continue
            summaries.append(PageSummary(
                path=document.path,
                title=title,
                labels=tuple(document.front_matter.labels),
                metadata=document.front_matter.metadata,
            ))
        return CrossDocumentIndex(self.config.space_key, summaries, files)

    # Conversion

    def _is_folder(self, document: Document) -> bool:
        return (
            document.front_matter.folder
            and self.builder.is_index(document.path)
            and document.directory != ""
        )

    def _convert_one(self, document: Document, evaluator: MacroEvaluator,
                     converter: DocumentConverter) -> ConversionResult:
        front_matter = document.front_matter
        context = MacroContext(
            source=document.path,
            metadata=front_matter.metadata,
            imports=front_matter.imports,
        )
        text = evaluator.evaluate(document.body, context)
        result = converter.convert(
            document.path, text, title=front_matter.title, folder=self._is_folder(document)
        )
        result.warnings = context.warnings + result.warnings
        return result

    def convert_all(self, documents: List[Document], index: CrossDocumentIndex,
                    users: Optional[UserDirectory] = None,
                    ) -> Tuple[List[Tuple[Document, ConversionResult]], List[DocumentError]]:
        """Evaluate macros and convert every document on a worker pool.

        Returns:
            Converted (document, result) pairs in path order, and the errors
        """
        evaluator = MacroEvaluator(index, macro_dir=self.config.macro_path, users=users)
        converter = DocumentConverter(
            index,
            source_dir=self.config.source_dir,
            index_name=self.config.index_name,
            mirror_remote_images=self.config.mirror_remote_images,
        )

        converted: List[Tuple[Document, ConversionResult]] = []
        errors: List[DocumentError] = []

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {
                executor.submit(self._convert_one, document, evaluator, converter): document
                for document in documents
            }
            for i, future in enumerate(as_completed(futures), 1):
                document = futures[future]
                logger.debug(f"Converted {i}/{len(documents)}: {document.path}")
                try:
                    converted.append((document, future.result()))
                except DocumentError as e:
                    logger.error(str(e))
                    errors.append(e)

        converted.sort(key=lambda pair: pair[0].path)
        errors.sort(key=lambda error: error.source)
        return converted, errors

    # Run

    def run(self, dry_run: bool = False) -> RunReport:
        """Run every stage and, unless ``dry_run``, apply the plan.

        Raises:
            ConfluenceError: If the space cannot be queried
        """
        report = RunReport()

        tree = self.discover()
        report.documents = len(tree.documents)
        documents, errors = self.load_documents(tree.documents)
        report.errors.extend(errors)

        index = self.build_index(documents, tree.files)
        users = UserDirectory(self.api.search_user)
        converted, errors = self.convert_all(documents, index, users)
        report.errors.extend(errors)
        for _, result in converted:
            report.warnings.extend(result.warnings)

        built = self.builder.build(converted, tree.files)
        report.errors.extend(built.errors)
        graph = built.graph
        FingerprintComputer.apply(graph)
        report.graph = graph

        reader = RemoteStateReader(self.api, self.config.space_key)
        state = reader.read(with_status=any(node.status for node in graph.walk()))

        editors = None
        if self.config.single_editor:
            editors = [self.api.get_current_user()["accountId"]]
        engine = ReconciliationEngine(editors=editors)
        report.plan = engine.reconcile(graph, state.records, reader.attachments)

        if dry_run:
            logger.info("Dry run: plan not executed")
            return report

        executor = PlanExecutor(self.api, state, reader, graph)
        report.execution = executor.execute(report.plan)
        return report
