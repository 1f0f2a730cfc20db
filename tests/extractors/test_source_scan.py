"""
Tests for the source-scan extractors.

============================================================
PURPOSE
============================================================
Covers:
1. String-aware bracket walking
2. Instrument and unit inference
3. Every language scanner on representative snippets
4. Duplicate collapsing

============================================================
"""

import pytest

from domain.models import InstrumentType, RawMetric
from extractors.source_scan import (
    AsyncMetricsScanner,
    CadvisorScanner,
    CodexNamesScanner,
    CSharpScanner,
    CurrentMetricsScanner,
    GeminiTelemetryScanner,
    GoOtelScanner,
    JavaScanner,
    JavaScriptScanner,
    KsmScanner,
    PrometheusGoScanner,
    ProfileEventsScanner,
    PythonScanner,
    RustScanner,
    deduplicate_metrics,
    semconv_metrics,
)
from extractors.source_scan.brackets import (
    GO_RULES,
    PYTHON_RULES,
    RUST_RULES,
    call_arguments,
    find_closing,
    split_arguments,
)
from extractors.source_scan.coding_agents import describe_name
from extractors.source_scan.dedupe import by_name
from extractors.source_scan.inference import (
    infer_dotted_instrument,
    infer_dotted_unit,
    infer_prometheus_instrument,
    instrument_from_stem,
)


def by_metric_name(metrics: list[RawMetric]) -> dict[str, RawMetric]:
    return {m.name: m for m in metrics}


# ============================================================
# BRACKET TESTS
# ============================================================

class TestBrackets:
    """Tests for the string-aware bracket walker."""

    def test_parens_inside_strings_are_ignored(self):
        """Test delimiters inside quoted and raw strings do not nest."""
        content = 'f("a)", g(1, 2), `x)`)'

        assert find_closing(content, 1, GO_RULES) == len(content)
        assert call_arguments(content, 1, GO_RULES) == '"a)", g(1, 2), `x)`'

    def test_comments_are_skipped(self):
        """Test delimiters in line and block comments are ignored."""
        content = "f(a /* ) */, b) // )"

        assert call_arguments(content, 1, GO_RULES) == "a /* ) */, b"

    def test_unterminated_input(self):
        """Test an unterminated string or call yields None."""
        assert find_closing('f("abc', 1, GO_RULES) is None
        assert call_arguments("f(a, b", 1, GO_RULES) is None

    def test_python_triple_quotes(self):
        """Test triple-quoted strings are one literal."""
        content = 'f("""a ) "b" """, c)'

        assert split_arguments(call_arguments(content, 1, PYTHON_RULES), PYTHON_RULES) == [
            '"""a ) "b" """',
            "c",
        ]

    def test_rust_lifetimes_are_not_strings(self):
        """Test single quotes do not open strings under Rust rules."""
        content = "f(x: &'a str)"

        assert call_arguments(content, 1, RUST_RULES) == "x: &'a str"

    def test_split_arguments_nested(self):
        """Test only top-level commas split and trailing empties drop."""
        args = 'name, []string{"a", "b"}, fn(x, y),\n'

        assert split_arguments(args, GO_RULES) == ["name", '[]string{"a", "b"}', "fn(x, y)"]


# ============================================================
# INFERENCE TESTS
# ============================================================

class TestInference:
    """Tests for name-based inference."""

    @pytest.mark.parametrize("name,expected", [
        ("node_cpu_seconds_total", InstrumentType.COUNTER),
        ("http_requests_count", InstrumentType.COUNTER),
        ("request_duration_seconds_sum", InstrumentType.COUNTER),
        ("request_duration_seconds_bucket", InstrumentType.HISTOGRAM),
        ("node_load1", InstrumentType.GAUGE),
    ])
    def test_prometheus_names(self, name, expected):
        """Test Prometheus suffix rules."""
        assert infer_prometheus_instrument(name) == expected

    def test_dotted_names(self):
        """Test dotted suffix rules, including .time/.duration as counters."""
        assert infer_dotted_instrument("system.cpu.time") == InstrumentType.COUNTER
        assert infer_dotted_instrument("http.server.duration") == InstrumentType.COUNTER
        assert infer_dotted_instrument("system.memory.usage") == InstrumentType.GAUGE
        assert infer_dotted_instrument("process.threads") == InstrumentType.GAUGE

    def test_dotted_units(self):
        """Test unit inference from dotted names."""
        assert infer_dotted_unit("system.cpu.time") == "s"
        assert infer_dotted_unit("system.memory.usage") == "By"
        assert infer_dotted_unit("system.disk.io") == "By"
        assert infer_dotted_unit("process.threads") == ""

    @pytest.mark.parametrize("stem,expected", [
        ("Int64ObservableUpDownCounter", InstrumentType.UP_DOWN_COUNTER),
        ("create_up_down_counter", InstrumentType.UP_DOWN_COUNTER),
        ("f64_histogram", InstrumentType.HISTOGRAM),
        ("counter", InstrumentType.COUNTER),
        ("createObservableGauge", InstrumentType.GAUGE),
    ])
    def test_instrument_from_stem(self, stem, expected):
        """Test API stems across naming styles."""
        assert instrument_from_stem(stem) == expected


# ============================================================
# GO TESTS
# ============================================================

GO_OTEL_SOURCE = '''
package otelhttp

const requestDuration = "http.server.request.duration"

func newMetrics(meter metric.Meter) {
	counter, _ := meter.Int64Counter("http.server.request.count",
		metric.WithDescription("Number of requests (total)"),
		metric.WithUnit("{request}"))
	hist, _ := meter.Float64Histogram(requestDuration, metric.WithUnit("s"))
	active, _ := meter.Int64UpDownCounter("http.server.active_requests")
}
'''

PROMETHEUS_GO_SOURCE = '''
package collector

const namespace = "node"

var cpuLabels = []string{"cpu", "mode"}

func NewCPUCollector() {
	desc := prometheus.NewDesc(
		prometheus.BuildFQName(namespace, "cpu", "seconds_total"),
		"Seconds the CPUs spent in each mode.",
		cpuLabels, nil,
	)
	up := prometheus.NewDesc("node_up", "Whether the node is up.", []string{"instance"}, nil)
	info := prometheus.NewDesc(namespace+"_info", "Node info.", nil, nil)
}
'''

KSM_SOURCE = '''
func podMetricFamilies() []generator.FamilyGenerator {
	return []generator.FamilyGenerator{
		*generator.NewFamilyGeneratorWithStability(
			"kube_pod_info",
			"Information about pod.",
			metric.Gauge,
			basemetrics.STABLE,
			"",
			wrapPodFunc(func(p *v1.Pod) *metric.Family { return nil }),
		),
		*generator.NewFamilyGeneratorWithStability(
			"kube_pod_container_status_restarts_total", "Restarts.", metric.Counter, basemetrics.ALPHA, "", nil),
	}
}
'''

CADVISOR_SOURCE = '''
func (c *PrometheusCollector) metrics() {
	metrics := []containerMetric{
		{
			name:        "container_cpu_usage_seconds_total",
			help:        "Cumulative cpu time consumed in seconds.",
			valueType:   prometheus.CounterValue,
			extraLabels: []string{"cpu"},
			getValues: func(s *info.ContainerStats) metricValues {
				return nil
			},
		},
		{
			name:      "container_memory_usage_bytes",
			help:      "Current memory usage in bytes.",
			valueType: prometheus.GaugeValue,
			getValues: func(s *info.ContainerStats) metricValues { return nil },
		},
	}
}
'''


class TestGoScanners:
    """Tests for the Go scanners."""

    def test_otel_instruments(self):
        """Test meter constructors with options and constant names."""
        metrics = by_metric_name(GoOtelScanner().scan(GO_OTEL_SOURCE))

        count = metrics["http.server.request.count"]
        assert count.instrument_type == InstrumentType.COUNTER
        assert count.description == "Number of requests (total)"
        assert count.unit == "{request}"

        duration = metrics["http.server.request.duration"]
        assert duration.instrument_type == InstrumentType.HISTOGRAM
        assert duration.unit == "s"
        assert duration.description == ""

        assert metrics["http.server.active_requests"].instrument_type == InstrumentType.UP_DOWN_COUNTER

    def test_prometheus_new_desc(self):
        """Test BuildFQName, literal and concatenated names with labels."""
        metrics = by_metric_name(PrometheusGoScanner().scan(PROMETHEUS_GO_SOURCE))

        cpu = metrics["node_cpu_seconds_total"]
        assert cpu.instrument_type == InstrumentType.COUNTER
        assert cpu.description == "Seconds the CPUs spent in each mode."
        assert [a.name for a in cpu.attributes] == ["cpu", "mode"]

        up = metrics["node_up"]
        assert up.instrument_type == InstrumentType.GAUGE
        assert [a.name for a in up.attributes] == ["instance"]

        assert metrics["node_info"].attributes == []

    def test_ksm_family_generators(self):
        """Test kube-state-metrics generators take their type from the third argument."""
        metrics = KsmScanner().scan(KSM_SOURCE)

        assert [m.name for m in metrics] == ["kube_pod_info", "kube_pod_container_status_restarts_total"]
        assert metrics[0].instrument_type == InstrumentType.GAUGE
        assert metrics[0].description == "Information about pod."
        assert metrics[1].instrument_type == InstrumentType.COUNTER

    def test_cadvisor_metric_table(self):
        """Test untyped slice elements with valueType and extraLabels."""
        metrics = CadvisorScanner().scan(CADVISOR_SOURCE)

        assert [m.name for m in metrics] == [
            "container_cpu_usage_seconds_total",
            "container_memory_usage_bytes",
        ]
        assert metrics[0].instrument_type == InstrumentType.COUNTER
        assert [a.name for a in metrics[0].attributes] == ["cpu"]
        assert metrics[1].instrument_type == InstrumentType.GAUGE
        assert metrics[1].description == "Current memory usage in bytes."


# ============================================================
# OTHER LANGUAGE TESTS
# ============================================================

CSHARP_SOURCE = '''
internal sealed class HttpMetrics
{
    internal const string RequestDurationName = "http.server.request.duration";

    public HttpMetrics(Meter meter)
    {
        this.requestDuration = meter.CreateHistogram<double>(
            RequestDurationName,
            unit: "s",
            description: "Duration of HTTP server requests.");
        var active = meter.CreateUpDownCounter<long>("http.server.active_requests", "{request}", "Number of active requests.");
    }
}
'''

PYTHON_SOURCE = '''
from opentelemetry.semconv_ai import Meters


class Instrumentor:
    def _instrument(self, meter):
        duration = meter.create_histogram(
            name=Meters.LLM_OPERATION_DURATION,
            unit="s",
            description="GenAI operation duration",
        )
        tokens = meter.create_counter("llm.tokens", "{token}", "Number of tokens")
        meter.create_something_else("ignored")
'''

RUST_SOURCE = '''
const REQUEST_DURATION: &str = "http.server.request.duration";

fn metrics(meter: &Meter) {
    let histogram = meter
        .f64_histogram(REQUEST_DURATION)
        .with_description("Duration of HTTP server requests.")
        .with_unit("s")
        .build();
    let counter = meter.u64_counter("requests.total").build();
    let unknown = meter.u64_counter(UNDECLARED).build();
}
'''

JAVA_SOURCE = '''
LongCounter counter = meter.counterBuilder("jvm.class.loaded")
    .setDescription("Number of classes loaded since JVM start.")
    .setUnit("{class}")
    .build();
meter.upDownCounterBuilder("db.client.connections.usage")
    .setUnit("{connection}")
    .buildWithCallback(measurement -> {});
'''

JS_SEMCONV_SOURCE = '''
/**
 * Total CPU seconds broken down by different states.
 *
 * @experimental This metric is experimental.
 */
export const METRIC_SYSTEM_CPU_TIME = 'system.cpu.time' as const;

/** Reports memory in use by state. */
export const METRIC_SYSTEM_MEMORY_USAGE = 'system.memory.usage' as const;
'''

JS_CALL_SITE_SOURCE = '''
this._meter.createObservableCounter(METRIC_SYSTEM_CPU_TIME, {
  description: 'Cpu time in seconds',
  unit: 's',
});
this._meter.createHistogram('http.client.duration', { unit: 'ms' });
'''


class TestLanguageScanners:
    """Tests for the C#, Python, Rust, Java and JavaScript scanners."""

    def test_csharp_named_and_positional_arguments(self):
        """Test constant names, named and positional unit/description."""
        metrics = by_metric_name(CSharpScanner().scan(CSHARP_SOURCE))

        duration = metrics["http.server.request.duration"]
        assert duration.instrument_type == InstrumentType.HISTOGRAM
        assert duration.unit == "s"
        assert duration.description == "Duration of HTTP server requests."

        active = metrics["http.server.active_requests"]
        assert active.instrument_type == InstrumentType.UP_DOWN_COUNTER
        assert active.unit == "{request}"
        assert active.description == "Number of active requests."

    def test_python_keyword_reference_and_positional(self):
        """Test dotted constant references resolve through the shared table."""
        scanner = PythonScanner({"LLM_OPERATION_DURATION": "gen_ai.client.operation.duration"})

        metrics = by_metric_name(scanner.scan(PYTHON_SOURCE))

        assert set(metrics) == {"gen_ai.client.operation.duration", "llm.tokens"}
        duration = metrics["gen_ai.client.operation.duration"]
        assert duration.instrument_type == InstrumentType.HISTOGRAM
        assert duration.unit == "s"
        assert duration.description == "GenAI operation duration"

        tokens = metrics["llm.tokens"]
        assert tokens.instrument_type == InstrumentType.COUNTER
        assert tokens.unit == "{token}"
        assert tokens.description == "Number of tokens"

    def test_python_unresolved_reference_is_skipped(self):
        """Test a name reference that cannot be resolved yields nothing."""
        metrics = PythonScanner().scan("meter.create_counter(name=Meters.UNKNOWN)")

        assert metrics == []

    def test_rust_builder_chains(self):
        """Test constants resolve and unresolved constants are skipped."""
        metrics = RustScanner().scan(RUST_SOURCE)

        assert [m.name for m in metrics] == ["http.server.request.duration", "requests.total"]
        assert metrics[0].instrument_type == InstrumentType.HISTOGRAM
        assert metrics[0].description == "Duration of HTTP server requests."
        assert metrics[0].unit == "s"
        assert metrics[1].instrument_type == InstrumentType.COUNTER
        assert metrics[1].description == ""

    def test_java_builder_chains(self):
        """Test builder stems and chain options."""
        metrics = JavaScanner().scan(JAVA_SOURCE)

        assert [m.name for m in metrics] == ["jvm.class.loaded", "db.client.connections.usage"]
        assert metrics[0].instrument_type == InstrumentType.COUNTER
        assert metrics[0].unit == "{class}"
        assert metrics[0].description == "Number of classes loaded since JVM start."
        assert metrics[1].instrument_type == InstrumentType.UP_DOWN_COUNTER
        assert metrics[1].unit == "{connection}"

    def test_js_semconv_exports(self):
        """Test JSDoc descriptions and inferred types/units."""
        metrics = by_metric_name(semconv_metrics(JS_SEMCONV_SOURCE))

        cpu = metrics["system.cpu.time"]
        assert cpu.description == "Total CPU seconds broken down by different states."
        assert cpu.instrument_type == InstrumentType.COUNTER
        assert cpu.unit == "s"

        memory = metrics["system.memory.usage"]
        assert memory.description == "Reports memory in use by state."
        assert memory.instrument_type == InstrumentType.GAUGE
        assert memory.unit == "By"

    def test_js_call_sites(self):
        """Test METRIC_* references resolve through the supplied constants."""
        scanner = JavaScriptScanner({"METRIC_SYSTEM_CPU_TIME": "system.cpu.time"})

        metrics = scanner.scan(JS_CALL_SITE_SOURCE)

        assert [m.name for m in metrics] == ["system.cpu.time", "http.client.duration"]
        assert metrics[0].instrument_type == InstrumentType.COUNTER
        assert metrics[0].description == "Cpu time in seconds"
        assert metrics[1].instrument_type == InstrumentType.HISTOGRAM
        assert metrics[1].unit == "ms"

    def test_python_keyword_values_with_embedded_quotes(self):
        """Test keyword strings keep apostrophes and escaped quotes."""
        content = (
            'meter.create_counter("http.client.requests", unit="1", '
            'description="Client\'s requests, by \\"route\\"")'
        )

        metrics = PythonScanner().scan(content)

        assert len(metrics) == 1
        assert metrics[0].unit == "1"
        assert metrics[0].description == 'Client\'s requests, by \\"route\\"'

    def test_python_keyword_name_after_options(self):
        """Test keyword order does not matter and nested calls are not read."""
        content = 'meter.create_histogram(unit=units("s"), description=\'It\\\'s slow\', name="db.wait")'

        metrics = PythonScanner().scan(content)

        assert [m.name for m in metrics] == ["db.wait"]
        assert metrics[0].unit == ""
        assert metrics[0].description == "It\\'s slow"

    def test_js_option_values_with_embedded_quotes(self):
        """Test option strings keep quotes of the other kind."""
        content = '''
        meter.createCounter('http.client.requests', {
          description: "Client's requests",
          'unit': '{request}',
        });
        '''

        metrics = JavaScriptScanner().scan(content)

        assert metrics[0].description == "Client's requests"
        assert metrics[0].unit == "{request}"

# ============================================================
# CLICKHOUSE TESTS
# ============================================================

class TestClickHouseScanners:
    """Tests for the ClickHouse C++ tables."""

    def test_current_metrics(self):
        """Test CurrentMetrics entries become prefixed gauges."""
        content = '''
        #define APPLY_FOR_BUILTIN_METRICS(M) \\
            M(Query, "Number of executing queries") \\
            M(Merge, "Number of executing background merges") \\
        '''

        metrics = CurrentMetricsScanner().scan(content)

        assert [m.name for m in metrics] == ["ClickHouseMetrics_Query", "ClickHouseMetrics_Merge"]
        assert all(m.instrument_type == InstrumentType.GAUGE for m in metrics)

    def test_profile_events_units(self):
        """Test ProfileEvents are counters with units from ValueType."""
        content = '''
            M(ReadBufferFromFileDescriptorReadBytes, "Number of bytes read", ValueType::Bytes) \\
            M(Query, "Number of queries", ValueType::Number) \\
        '''

        metrics = ProfileEventsScanner().scan(content)

        assert metrics[0].name == "ClickHouseProfileEvents_ReadBufferFromFileDescriptorReadBytes"
        assert metrics[0].instrument_type == InstrumentType.COUNTER
        assert metrics[0].unit == "bytes"
        assert metrics[1].unit == ""

    def test_async_metrics(self):
        """Test static keys only, each once, with descriptions."""
        content = '''
            new_values["Uptime"] = { uptime, "The server uptime in seconds." };
            new_values["Jitter"] = { jitter, "Jitter" };
            new_values["Uptime"] = { uptime, "duplicate" };
            new_values[fmt::format("CPU{}", i)] = { v, "computed" };
        '''

        metrics = AsyncMetricsScanner().scan(content)

        assert [m.name for m in metrics] == ["ClickHouseAsyncMetrics_Uptime", "ClickHouseAsyncMetrics_Jitter"]
        assert metrics[1].description == "Jitter"


# ============================================================
# CODING AGENT TESTS
# ============================================================

class TestCodingAgentScanners:
    """Tests for the Codex and Gemini CLI scanners."""

    def test_codex_names_table(self):
        """Test _ms names become histograms and others counters."""
        content = '''
        pub const TOOL_CALL: &str = "codex.tool.call";
        pub const TURN_E2E_DURATION: &str = "codex.turn.e2e_duration_ms";
        '''

        metrics = CodexNamesScanner().scan(content)

        assert metrics[0].name == "codex.tool.call"
        assert metrics[0].instrument_type == InstrumentType.COUNTER
        assert metrics[0].unit == "count"
        assert metrics[0].description == "Tool Call"
        assert metrics[1].instrument_type == InstrumentType.HISTOGRAM
        assert metrics[1].unit == "ms"
        assert metrics[1].description == "Turn E2e Duration Ms"

    def test_describe_single_segment_name(self):
        """Test names without a namespace are returned unchanged."""
        assert describe_name("sessions") == "sessions"

    def test_gemini_create_calls(self):
        """Test description/unit from the options object and the count default."""
        content = '''
        toolCallCounter = meter.createCounter(METRIC_TOOL_CALL_COUNT_NAME_IGNORED);
        apiRequestLatency = meter.createHistogram('gemini_cli.api.request.latency', {
          description: 'Latency of API requests in milliseconds.',
          unit: 'ms',
          valueType: ValueType.INT,
        });
        sessionCounter = meter.createCounter("gemini_cli.session.count", {
          description: 'Count of CLI sessions started.',
        });
        '''

        metrics = GeminiTelemetryScanner().scan(content)

        assert [m.name for m in metrics] == ["gemini_cli.api.request.latency", "gemini_cli.session.count"]
        assert metrics[0].instrument_type == InstrumentType.HISTOGRAM
        assert metrics[0].unit == "ms"
        assert metrics[1].instrument_type == InstrumentType.COUNTER
        assert metrics[1].unit == "count"
        assert metrics[1].description == "Count of CLI sessions started."

    def test_gemini_description_with_apostrophe(self):
        """Test the options object is parsed, not scanned up to the first quote."""
        content = "meter.createCounter('gemini_cli.tool.call.count', { description: \"Counts the agent's tool calls.\" });"

        metrics = GeminiTelemetryScanner().scan(content)

        assert metrics[0].description == "Counts the agent's tool calls."
        assert metrics[0].unit == "count"


# ============================================================
# DEDUPLICATION TESTS
# ============================================================

class TestDeduplication:
    """Tests for duplicate collapsing."""

    def test_keeps_first_unless_later_has_description(self):
        """Test the described duplicate wins and order is first-seen."""
        metrics = [
            RawMetric(name="a", component_name="x"),
            RawMetric(name="b", component_name="x", description="first b"),
            RawMetric(name="a", component_name="x", description="described a"),
            RawMetric(name="b", component_name="x", description="second b"),
            RawMetric(name="a", component_name="y"),
        ]

        kept = deduplicate_metrics(metrics)

        assert [(m.name, m.component_name, m.description) for m in kept] == [
            ("a", "x", "described a"),
            ("b", "x", "first b"),
            ("a", "y", ""),
        ]

    def test_dedupe_by_name(self):
        """Test the name-only key collapses across components."""
        metrics = [RawMetric(name="a", component_name="x"), RawMetric(name="a", component_name="y")]

        assert len(deduplicate_metrics(metrics, key=by_name)) == 1
