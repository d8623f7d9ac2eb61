"""
Export rows for analysis, comparison and geocoding results.

Column names added here are part of the exported file format and must not change.
"""
from dataclasses import asdict
from typing import Any, Dict, List

from geoinsights.models import AnalysisMetrics, AnalysisResult, ComparisonResult

MOTIVO_PROBLEMA = "MOTIVO_PROBLEMA"
STATUS_ANALISE = "STATUS_ANALISE"
ESTADO_DETECTADO = "ESTADO_DETECTADO"
CIDADE_DETECTADA = "CIDADE_DETECTADA"
LINHA_BASE = "LINHA_BASE"
LINHA_MATCH = "LINHA_MATCH"
DISTANCIA_M = "DISTANCIA_M"
BASE_PREFIX = "BASE_"
MATCH_PREFIX = "MATCH_"


def problem_report(result: AnalysisResult) -> List[Dict[str, Any]]:
    """Problematic points with their original columns and the problem reason."""
    return [
        {**p.attributes, MOTIVO_PROBLEMA: p.classification.reason if p.classification else None}
        for p in result.problematic_points
    ]


def full_report(result: AnalysisResult) -> List[Dict[str, Any]]:
    """Every analyzed point with its status and the place detected from its coordinates."""
    return [
        {
            **p.attributes,
            STATUS_ANALISE: p.classification.reason if p.classification else None,
            ESTADO_DETECTADO: p.detected_state,
            CIDADE_DETECTADA: p.detected_city,
        }
        for p in result.all_points
    ]


def comparison_report(result: ComparisonResult) -> List[Dict[str, Any]]:
    """One row per match: prefixed base and match columns, row numbers and the distance in meters."""
    rows = []
    for record in result.records:
        row: Dict[str, Any] = {LINHA_BASE: record.base_row}
        row.update({f"{BASE_PREFIX}{k}": v for k, v in record.base_attributes.items()})
        row[LINHA_MATCH] = record.match_row
        row.update({f"{MATCH_PREFIX}{k}": v for k, v in record.match_attributes.items()})
        row[DISTANCIA_M] = round(record.distance, 2)
        rows.append(row)
    return rows


def metrics_summary(metrics: AnalysisMetrics) -> Dict[str, int]:
    return asdict(metrics)


def comparison_summary(result: ComparisonResult) -> Dict[str, Any]:
    return {
        "base_sheet": result.base_sheet,
        "policy": repr(result.policy),
        "total_base_points": result.total_base_points,
        "matched_base_points": result.matched_base_points,
        "total_matches": len(result.records),
        "same_square_matches": len(result.same_square_matches),
    }
