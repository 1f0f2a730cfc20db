"""
Instrument-type and unit inference for sources that do not encode them.

Note: dotted .time/.duration names are classified as counters. They
usually denote cumulative time, but histogram durations are therefore
mis-classified; the rule is kept for output stability.
"""

from domain.models import InstrumentType


_PROMETHEUS_COUNTER_SUFFIXES = ("_total", "_count", "_sum")
_DOTTED_COUNTER_SUFFIXES = (".time", ".duration", ".count", ".total", ".errors", ".io")
_DOTTED_GAUGE_SUFFIXES = (".usage", ".used", ".utilization", ".limit", ".size")


def infer_prometheus_instrument(name: str) -> InstrumentType:
    """Prometheus-style names: _total/_count/_sum -> counter, _bucket -> histogram, else gauge."""
    if name.endswith("_bucket"):
        return InstrumentType.HISTOGRAM
    if name.endswith(_PROMETHEUS_COUNTER_SUFFIXES):
        return InstrumentType.COUNTER
    return InstrumentType.GAUGE


def infer_dotted_instrument(name: str) -> InstrumentType:
    """OpenTelemetry-style dotted names."""
    if name.endswith(_DOTTED_COUNTER_SUFFIXES):
        return InstrumentType.COUNTER
    if name.endswith(_DOTTED_GAUGE_SUFFIXES):
        return InstrumentType.GAUGE
    return InstrumentType.GAUGE


def infer_instrument(name: str) -> InstrumentType:
    """Apply underscore suffix rules first, then dotted suffix rules."""
    if name.endswith("_bucket") or name.endswith(_PROMETHEUS_COUNTER_SUFFIXES):
        return infer_prometheus_instrument(name)
    return infer_dotted_instrument(name)


def infer_dotted_unit(name: str) -> str:
    """Unit implied by a dotted metric name family, empty when unknown."""
    if name.endswith(".time") or ".duration" in name:
        return "s"
    if name.endswith(".usage") and "memory" in name:
        return "By"
    if name.endswith(".io"):
        return "By"
    if ".delay." in name:
        return "s"
    return ""


def instrument_from_stem(stem: str) -> InstrumentType:
    """
    Map an API method stem to an instrument type.

    Works across naming styles: Int64ObservableUpDownCounter,
    create_up_down_counter, f64_histogram, upDownCounterBuilder.
    """
    normalized = stem.replace("_", "").lower()
    if "updowncounter" in normalized:
        return InstrumentType.UP_DOWN_COUNTER
    if "counter" in normalized:
        return InstrumentType.COUNTER
    if "histogram" in normalized:
        return InstrumentType.HISTOGRAM
    return InstrumentType.GAUGE
