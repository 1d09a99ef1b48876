"""
Plain-text and tabular exports of evaluations kept in the history.
"""
from pathlib import Path
from typing import Iterable
import pandas as pd
from essay_reviewer.model.evaluation_result import EvaluationResult
from essay_reviewer.model.history_item import HistoryItem

HISTORY_COLUMNS = ["id", "name", "date", "overall_score", "c1", "c2", "c3", "c4", "c5", "deviations"]


def render_evaluation_text(result: EvaluationResult) -> str:
    """
    Render an evaluation as the downloadable text report:

        ANÁLISE DE REDAÇÃO ENEM
        =========================

        NOTA FINAL: 880

        --- RESUMO DA AVALIAÇÃO ---
        ...
    """
    content = "ANÁLISE DE REDAÇÃO ENEM\n"
    content += "=========================\n\n"
    content += f"NOTA FINAL: {result.overall_score}\n\n"
    content += f"--- RESUMO DA AVALIAÇÃO ---\n{result.summary}\n\n"
    content += "--- ANÁLISE POR COMPETÊNCIA ---\n"
    for c in result.competencies:
        content += f"{c.name} (Nota: {c.score}/200)\n"
        content += f"{c.feedback}\n\n"

    if result.improvement_insights:
        content += "--- DICAS PARA MELHORAR ---\n"
        for tip in result.improvement_insights:
            content += f"- {tip}\n"

    if result.deviations:
        content += "\n--- DESVIOS GRAMATICAIS ---\n"
        for d in result.deviations:
            content += f"[Competência {d.competency}] {d.type}\n"
            content += f"  Trecho: {d.original_excerpt}\n"
            content += f"  Correção: {d.correction}\n"
            content += f"  Comentário: {d.comment}\n"

    return content


def export_evaluation_text(result: EvaluationResult, output_path: str) -> Path:
    output_file = Path(output_path)
    output_file.parent.mkdir(exist_ok=True, parents=True)
    output_file.write_text(render_evaluation_text(result), encoding="utf-8")
    return output_file


def history_to_frame(items: Iterable[HistoryItem]) -> pd.DataFrame:
    rows = []
    for item in items:
        row = {
            "id": item.id,
            "name": item.name,
            "date": item.date,
            "overall_score": item.evaluation.overall_score,
            "deviations": len(item.evaluation.deviations),
        }
        for idx, competency in enumerate(item.evaluation.competencies, start=1):
            row[f"c{idx}"] = competency.score
        rows.append(row)
    return pd.DataFrame(rows, columns=HISTORY_COLUMNS)


def export_history_csv(items: Iterable[HistoryItem], output_path: str) -> Path:
    output_file = Path(output_path)
    output_file.parent.mkdir(exist_ok=True, parents=True)
    history_to_frame(items).to_csv(output_file, index=False, encoding="utf-8")
    return output_file
