"""Ingestion strategies — one parser per resource type, selected by key.

A strategy turns one :class:`~sanctions_rag.ingestion.loader.Resource`
into normalised :class:`Document` records.  Chunking happens later, in a
separate pass.  Strategies are registered explicitly in a
:class:`StrategyRegistry` keyed by file extension.
"""

from __future__ import annotations

import csv
import logging
import re
from abc import ABC, abstractmethod
from typing import ClassVar

from langchain_community.document_loaders import PyPDFLoader
from langchain_core.documents import Document

from sanctions_rag.exceptions import ResourceParseError
from sanctions_rag.ingestion.loader import Resource

logger = logging.getLogger(__name__)


class IngestionStrategy(ABC):
    """Parse one resource type into documents."""

    key: ClassVar[str]

    def strategy_key(self) -> str:
        return self.key

    @abstractmethod
    def parse(self, resource: Resource) -> list[Document]:
        """Return the documents contained in *resource*.

        Raises
        ------
        Exception
            Any failure that makes the whole resource unusable.  The
            ingestion runner logs it and moves on to the next resource.
        """
        ...


# ── CSV ───────────────────────────────────────────────────────────────

_RESOLUTION_DATE_SPLIT = re.compile(r"\s*\n\s*")

CSV_RECORD_TEMPLATE = """\
RESOLUCIÓN: {resolucion}
FECHA: {fecha}
ENTIDAD: {entidad}
INCUMPLIMIENTO: {incumplimiento}
TIPO DE SANCIÓN: {tipo_sancion}
"""


def split_resolution_and_date(raw: str) -> tuple[str, str]:
    """Split the composite ``"RESOLUCIÓN\\nFECHA"`` cell into its two parts.

    The date is empty when the cell holds no line break.
    """
    parts = _RESOLUTION_DATE_SPLIT.split(raw, maxsplit=1)
    code = parts[0].strip()
    date = parts[1].strip() if len(parts) > 1 else ""
    return code, date


class CsvIngestionStrategy(IngestionStrategy):
    """One document per sanctions row.

    Expected columns: ``RESOLUCIÓN Y FECHA``, ``ENTIDAD``,
    ``INCUMPLIMIENTO``, ``TIPO DE SANCIÓN``.  The header row is skipped;
    rows with a different column count are logged and skipped without
    aborting the file.
    """

    key = "csv"

    def __init__(self, expected_columns: int = 4, encoding: str = "utf-8-sig") -> None:
        self.expected_columns = expected_columns
        self.encoding = encoding

    def parse(self, resource: Resource) -> list[Document]:
        logger.info("Executing CSV ingestion strategy for %s", resource.filename)
        documents: list[Document] = []
        rejected = 0

        with resource.open_text(encoding=self.encoding) as fh:
            reader = csv.reader(fh)
            next(reader, None)  # header
            for row in reader:
                if not any(cell.strip() for cell in row):
                    continue
                try:
                    documents.append(self.row_to_document(row, source=resource.filename))
                except ResourceParseError as exc:
                    rejected += 1
                    logger.warning("%s line %d: %s", resource.filename, reader.line_num, exc)

        logger.info(
            "Loaded %d documents from CSV file %s (%d rows rejected)",
            len(documents),
            resource.filename,
            rejected,
        )
        return documents

    def row_to_document(self, row: list[str], *, source: str = "") -> Document:
        """Map one CSV row to a labelled record document."""
        if len(row) != self.expected_columns:
            raise ResourceParseError(
                f"expected {self.expected_columns} columns, got {len(row)}",
                context={"source": source},
            )
        resolucion, fecha = split_resolution_and_date(row[0])
        entidad, incumplimiento, tipo_sancion = (cell.strip() for cell in row[1:4])

        content = CSV_RECORD_TEMPLATE.format(
            resolucion=resolucion,
            fecha=fecha,
            entidad=entidad,
            incumplimiento=incumplimiento,
            tipo_sancion=tipo_sancion,
        )
        return Document(
            page_content=content,
            metadata={
                "resolucion": resolucion,
                "fecha": fecha,
                "entidad": entidad,
                "incumplimiento": incumplimiento,
                "tipo_sancion": tipo_sancion,
                "source": source,
                "source_type": "CSV",
            },
        )


# ── PDF ───────────────────────────────────────────────────────────────


class PdfIngestionStrategy(IngestionStrategy):
    """One document per PDF page, whole-page text."""

    key = "pdf"

    def parse(self, resource: Resource) -> list[Document]:
        logger.info("Executing PDF ingestion strategy for %s", resource.filename)
        pages = PyPDFLoader(str(resource.path)).load()

        documents = [
            Document(
                page_content=page.page_content,
                metadata={
                    "source": resource.filename,
                    "source_type": "PDF",
                    "page": str(int(page.metadata.get("page", i)) + 1),
                },
            )
            for i, page in enumerate(pages)
        ]
        logger.info("Loaded %d pages from PDF file %s", len(documents), resource.filename)
        return documents


# ── Registry ──────────────────────────────────────────────────────────


class StrategyRegistry:
    """Mapping of strategy key (file extension) → strategy instance."""

    def __init__(self, strategies: list[IngestionStrategy] | None = None) -> None:
        self._strategies: dict[str, IngestionStrategy] = {}
        for strategy in strategies or []:
            self.register(strategy)

    def register(self, strategy: IngestionStrategy) -> None:
        key = strategy.strategy_key().lower()
        if key in self._strategies:
            raise ValueError(f"A strategy is already registered for {key!r}")
        self._strategies[key] = strategy

    def keys(self) -> list[str]:
        return sorted(self._strategies)

    def get(self, key: str) -> IngestionStrategy | None:
        return self._strategies.get(key.lower())

    def resolve(self, resource: Resource) -> IngestionStrategy | None:
        """Return the strategy for *resource*'s extension, or ``None`` with a warning."""
        strategy = self.get(resource.extension)
        if strategy is None:
            logger.warning(
                "No ingestion strategy for extension %r (file %s), skipping",
                resource.extension,
                resource.filename,
            )
        return strategy


def default_registry() -> StrategyRegistry:
    """Registry with the built-in CSV and PDF strategies."""
    return StrategyRegistry([CsvIngestionStrategy(), PdfIngestionStrategy()])
