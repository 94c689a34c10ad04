"""
CloudWatch Metrics Helper

Provides utilities for emitting custom metrics to CloudWatch.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import boto3

logger = logging.getLogger(__name__)

NAMESPACE = os.environ.get("CLOUDWATCH_NAMESPACE", "PkgBadges")

_cloudwatch = None


def _get_cloudwatch():
    """Get CloudWatch client, creating it lazily on first use."""
    global _cloudwatch
    if _cloudwatch is None:
        _cloudwatch = boto3.client("cloudwatch")
    return _cloudwatch


def _metric_datum(
    metric_name: str,
    value: float,
    unit: str,
    dimensions: Optional[Dict[str, str]],
) -> dict:
    data = {
        "MetricName": metric_name,
        "Value": value,
        "Unit": unit,
        "Timestamp": datetime.now(timezone.utc),
    }
    if dimensions:
        data["Dimensions"] = [{"Name": k, "Value": v} for k, v in dimensions.items()]
    return data


def emit_metric(
    metric_name: str,
    value: float = 1.0,
    unit: str = "Count",
    dimensions: Optional[Dict[str, str]] = None,
) -> None:
    """
    Emit a custom metric to CloudWatch.

    Args:
        metric_name: Name of the metric
        value: Metric value (default: 1.0)
        unit: Unit of measurement (Count, Milliseconds, etc.)
        dimensions: Optional dimensions for filtering metrics

    Example:
        emit_metric("BadgesServed", dimensions={"Service": "NugetVersion"})
        emit_metric("UpstreamLatency", 120, unit="Milliseconds")
    """
    try:
        _get_cloudwatch().put_metric_data(
            Namespace=NAMESPACE,
            MetricData=[_metric_datum(metric_name, value, unit, dimensions)],
        )
        logger.debug(
            f"Emitted metric: {metric_name}={value} {unit}",
            extra={"dimensions": dimensions},
        )
    except Exception as e:
        # Metrics never fail a badge request
        logger.warning(f"Failed to emit metric {metric_name}: {e}")


def emit_batch_metrics(metrics: list[Dict[str, Any]]) -> None:
    """
    Emit multiple metrics in as few API calls as possible.

    Args:
        metrics: List of metric dictionaries with keys:
            - metric_name (str)
            - value (float, optional)
            - unit (str, optional)
            - dimensions (dict, optional)
    """
    try:
        metric_data = [
            _metric_datum(
                metric["metric_name"],
                metric.get("value", 1.0),
                metric.get("unit", "Count"),
                metric.get("dimensions"),
            )
            for metric in metrics
        ]

        # CloudWatch allows up to 20 metrics per request
        for i in range(0, len(metric_data), 20):
            _get_cloudwatch().put_metric_data(
                Namespace=NAMESPACE,
                MetricData=metric_data[i : i + 20],
            )

        logger.debug(f"Emitted {len(metric_data)} metrics in batch")

    except Exception as e:
        logger.warning(f"Failed to emit batch metrics: {e}")


def emit_badge_metric(service: str, outcome: str, latency_ms: Optional[float] = None) -> None:
    """
    Emit the per-request badge metrics.

    Args:
        service: Service name (e.g., 'NugetVersion')
        outcome: 'ok' or the error code that produced the badge
        latency_ms: Handler latency, if measured
    """
    metrics = [
        {
            "metric_name": "BadgesServed",
            "dimensions": {"Service": service, "Outcome": outcome},
        }
    ]
    if latency_ms is not None:
        metrics.append(
            {
                "metric_name": "BadgeLatency",
                "value": latency_ms,
                "unit": "Milliseconds",
                "dimensions": {"Service": service},
            }
        )
    emit_batch_metrics(metrics)
