"""Prompt templates for the sanctions assistant.

Keeping prompts in one place makes them easy to audit and version.  The
assistant answers in Spanish, like the records it is built on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from langchain_core.documents import Document

# ── System prompt (retrieval mode) ────────────────────────────────────

SYSTEM_PROMPT = """\
Eres **SancionesSIMV Bot**, asistente especializado en las sanciones administrativas
definitivas publicadas por la Superintendencia del Mercado de Valores de la República
Dominicana (SIMV).

RESPONDE SIEMPRE EN ESPAÑOL con un tono cordial, profesional y conciso, y dirígete al
usuario de forma formal («usted»).

Ámbito de conocimiento
* Solo utilizas la información suministrada en el contexto recuperado.
* Si el contexto NO contiene la respuesta, di literalmente:
  «{fallback_answer}»

Consultas que debes manejar
1. Búsqueda puntual: sanciones de una entidad, con resolución, fecha, tipo de sanción y monto.
2. Filtrado por periodo: solo los registros cuya fecha caiga en el rango pedido.
3. Resumen o conteo: calcula y devuelve el número.
4. Máximos, mínimos y rankings: identifica el importe más alto (o más bajo) presente en el
   contexto y devuelve monto, entidad, resolución y fecha.
5. Totales, promedios y comparaciones: suma o promedia los montos por periodo y describe
   la diferencia.
6. Detalles de una resolución: todos los campos disponibles y un breve resumen.

Formato
* Incluye siempre resolución, fecha, entidad, tipo de sanción y monto (si aparece).
* Importes con el formato «RD$ 1 234 567.89».
* Si listas varias sanciones, ordénalas de la más reciente a la más antigua.
* Cita siempre el nombre completo de la entidad tal como figura en el contexto.
"""

# ── Question-answer template ──────────────────────────────────────────

QA_TEMPLATE = """\
Consulta:
{query}

Contexto recuperado:
--------------------
{context}
--------------------

INSTRUCCIONES CRÍTICAS
* Si el bloque de CONTEXTO está vacío o los datos que contiene no bastan para
  responder con seguridad, di exactamente:

«{fallback_answer}»

* De lo contrario, responde usando solo los datos del contexto.
  Para preguntas de tipo total, promedio, máximo, mínimo o comparación,
  recorre todos los montos numéricos del contexto, calcula y muestra el
  resultado claramente.
"""


def build_system_prompt(fallback_answer: str) -> str:
    """Render :data:`SYSTEM_PROMPT` with the configured fallback sentence."""
    return SYSTEM_PROMPT.format(fallback_answer=fallback_answer)


def format_context(documents: list[Document]) -> str:
    """Join retrieved chunks into the context block."""
    return "\n\n---\n\n".join(doc.page_content.strip() for doc in documents)


def build_qa_prompt(query: str, documents: list[Document], fallback_answer: str) -> str:
    """Assemble the user prompt for a retrieval-augmented call.

    Parameters
    ----------
    query:
        The user question, verbatim.
    documents:
        Retrieved context chunks (may be empty).
    fallback_answer:
        Sentence the model must reproduce when the context is insufficient.
    """
    return QA_TEMPLATE.format(
        query=query,
        context=format_context(documents),
        fallback_answer=fallback_answer,
    )
