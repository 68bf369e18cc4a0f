"""Code execution tools backed by a remote sandbox.

Sandbox output re-enters the conversation as untrusted content, so every text
field coming back from the sandbox (stdout, stderr, error messages and parsed
results) is passed through the egress sanitizer before it is returned. The
default sanitization context is ``calculation``, which leaves figures,
version numbers and regulatory reference codes intact while still redacting
high-confidence PII and secrets.

Execution failures never raise: they are reported as ``success=False`` with a
sanitized ``error``.
"""

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from regguard.egress.models import Detector, SanitizationContext, SanitizationOptions, ScanType
from regguard.egress.sanitizer import EgressSanitizer
from regguard.sandbox.base import CodeSandbox

logger = logging.getLogger(__name__)

DEFAULT_SANDBOX_SANITIZATION = SanitizationContext.CALCULATION


class AnalysisType(StrEnum):
    TAX_CALCULATION = "tax_calculation"
    COMPLIANCE_CHECK = "compliance_check"
    DATA_ANALYSIS = "data_analysis"
    CUSTOM = "custom"


OutputFormat = Literal["json", "text", "csv"]


class RunCodeInput(BaseModel):
    """Arguments of the ``run_code`` tool."""

    language: Literal["python", "javascript", "typescript", "bash", "sh"] = Field(
        description="Programming language for code execution"
    )
    code: str = Field(min_length=1, description="Code to execute in the sandbox")
    description: str | None = Field(
        default=None,
        description="Optional description of what this code does (for logging)",
    )
    timeout: int | None = Field(
        default=None,
        ge=1000,
        le=600_000,
        description="Execution timeout in milliseconds (default: 60000, max: 600000)",
    )


class RunAnalysisInput(BaseModel):
    """Arguments of the ``run_analysis`` tool."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    analysis_type: AnalysisType = Field(description="Type of analysis to run")
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Analysis parameters (passed to analysis code as JSON)",
    )
    code: str | None = Field(
        default=None,
        description='Optional custom code to run (required if analysisType is "custom")',
    )
    output_format: OutputFormat | None = Field(
        default=None,
        description='Expected output format (defaults to "json")',
    )

    @model_validator(mode="after")
    def _custom_requires_code(self) -> "RunAnalysisInput":
        if self.analysis_type == AnalysisType.CUSTOM and not self.code:
            raise ValueError('code is required when analysisType is "custom"')
        return self


@dataclass
class CodeExecutionOptions:
    """How sandbox output is sanitized."""

    sanitization: SanitizationContext = DEFAULT_SANDBOX_SANITIZATION
    use_ml_detection: bool | None = None
    additional_patterns: list[Detector] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)


@dataclass
class CodeExecutionResult:
    """Sanitized outcome of a sandbox run."""

    success: bool
    stdout: str
    stderr: str
    exit_code: int
    error: str | None = None
    execution_time_ms: int | None = None
    sandbox_id: str | None = None
    sanitization_mode: SanitizationContext | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AnalysisExecutionResult(CodeExecutionResult):
    """Sanitized outcome of an analysis run."""

    result: list[Any] | None = None
    parsed_output: Any = None


def _sanitization_options(options: CodeExecutionOptions | None) -> SanitizationOptions:
    options = options or CodeExecutionOptions()
    return SanitizationOptions(
        context=SanitizationContext(options.sanitization),
        use_ml_detection=options.use_ml_detection,
        additional_patterns=list(options.additional_patterns),
        exclude_patterns=list(options.exclude_patterns),
        scan_type=ScanType.SANDBOX_OUTPUT,
    )


def _scrub(sanitizer: EgressSanitizer, text: str, opts: SanitizationOptions) -> str:
    # Audited so every sandbox scan shows up under sandbox_output
    return sanitizer.sanitize_text_with_audit(text, opts).text


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _failure(
    cls: type[CodeExecutionResult],
    error: Exception,
    start: float,
    sandbox: CodeSandbox,
    sanitizer: EgressSanitizer,
    opts: SanitizationOptions,
) -> Any:
    return cls(
        success=False,
        stdout="",
        stderr="",
        exit_code=1,
        error=_scrub(sanitizer, str(error), opts),
        execution_time_ms=_elapsed_ms(start),
        sandbox_id=sandbox.sandbox_id,
        sanitization_mode=opts.context,
    )


async def execute_code(
    tool_input: RunCodeInput,
    sandbox: CodeSandbox,
    log: logging.Logger | None = None,
    options: CodeExecutionOptions | None = None,
    sanitizer: EgressSanitizer | None = None,
) -> CodeExecutionResult:
    """Run code in the sandbox and return sanitized output.

    Args:
        tool_input: Validated ``run_code`` arguments
        sandbox: Sandbox to execute in
        log: Logger for execution events (defaults to this module's)
        options: Sanitization settings; ``calculation`` context by default
        sanitizer: Sanitizer to use (a stateless default when None)

    Returns:
        CodeExecutionResult; failures are reported, never raised
    """
    log = log or logger
    sanitizer = sanitizer or EgressSanitizer()
    opts = _sanitization_options(options)
    start = time.perf_counter()

    try:
        log.info(
            "Executing %s code in sandbox %s (sanitization=%s)%s",
            tool_input.language,
            sandbox.sandbox_id,
            opts.context,
            f": {tool_input.description}" if tool_input.description else "",
        )

        execution = await sandbox.run_code(
            tool_input.code,
            language=tool_input.language,
            timeout_ms=tool_input.timeout,
        )

        exit_code = execution.exit_code if execution.exit_code is not None else 0
        success = exit_code == 0 and not execution.error

        stdout = _scrub(sanitizer, "\n".join(execution.logs.stdout), opts)
        stderr = _scrub(sanitizer, "\n".join(execution.logs.stderr), opts)
        error = _scrub(sanitizer, str(execution.error), opts) if execution.error else None

        elapsed = _elapsed_ms(start)
        log.info(
            "Code execution in sandbox %s finished: exit_code=%d success=%s time=%dms",
            sandbox.sandbox_id,
            exit_code,
            success,
            elapsed,
        )

        return CodeExecutionResult(
            success=success,
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            error=error,
            execution_time_ms=elapsed,
            sandbox_id=sandbox.sandbox_id,
            sanitization_mode=opts.context,
        )
    except Exception as e:
        log.error("Code execution in sandbox %s failed: %s", sandbox.sandbox_id, e)
        return _failure(CodeExecutionResult, e, start, sandbox, sanitizer, opts)


async def execute_analysis(
    tool_input: RunAnalysisInput,
    sandbox: CodeSandbox,
    log: logging.Logger | None = None,
    options: CodeExecutionOptions | None = None,
    sanitizer: EgressSanitizer | None = None,
) -> AnalysisExecutionResult:
    """Run a templated or custom Python analysis in the sandbox.

    When the output format is ``json`` (the default), stdout is parsed and the
    parsed value is sanitized leaf by leaf. Unparseable output is logged and
    left as sanitized text in ``stdout``.

    Args:
        tool_input: Validated ``run_analysis`` arguments
        sandbox: Sandbox to execute in
        log: Logger for execution events (defaults to this module's)
        options: Sanitization settings; ``calculation`` context by default
        sanitizer: Sanitizer to use (a stateless default when None)

    Returns:
        AnalysisExecutionResult; failures are reported, never raised
    """
    log = log or logger
    sanitizer = sanitizer or EgressSanitizer()
    opts = _sanitization_options(options)
    output_format: OutputFormat = tool_input.output_format or "json"
    start = time.perf_counter()

    try:
        log.info(
            "Running %s analysis in sandbox %s (custom_code=%s, sanitization=%s)",
            tool_input.analysis_type,
            sandbox.sandbox_id,
            bool(tool_input.code),
            opts.context,
        )

        code = tool_input.code or generate_analysis_code(
            tool_input.analysis_type, tool_input.parameters, output_format
        )
        if not code:
            raise ValueError(
                "No code provided and no template available for analysis type: "
                f"{tool_input.analysis_type}"
            )

        execution = await sandbox.run_code(code, language="python")

        exit_code = execution.exit_code if execution.exit_code is not None else 0
        success = exit_code == 0 and not execution.error

        stdout = _scrub(sanitizer, "\n".join(execution.logs.stdout), opts)
        stderr = _scrub(sanitizer, "\n".join(execution.logs.stderr), opts)
        error = _scrub(sanitizer, str(execution.error), opts) if execution.error else None

        parsed_output = None
        if output_format == "json" and stdout:
            try:
                parsed_output = sanitizer.sanitize_object(json.loads(stdout), opts)
            except json.JSONDecodeError as e:
                log.warning("Failed to parse analysis output as JSON: %s", e)

        results = sanitizer.sanitize_object(execution.results, opts) if execution.results else []

        elapsed = _elapsed_ms(start)
        log.info(
            "Analysis in sandbox %s finished: exit_code=%d success=%s parsed=%s time=%dms",
            sandbox.sandbox_id,
            exit_code,
            success,
            parsed_output is not None,
            elapsed,
        )

        return AnalysisExecutionResult(
            success=success,
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            error=error,
            execution_time_ms=elapsed,
            sandbox_id=sandbox.sandbox_id,
            sanitization_mode=opts.context,
            result=results,
            parsed_output=parsed_output,
        )
    except Exception as e:
        log.error(
            "%s analysis in sandbox %s failed: %s",
            tool_input.analysis_type,
            sandbox.sandbox_id,
            e,
        )
        return _failure(AnalysisExecutionResult, e, start, sandbox, sanitizer, opts)


_TAX_CALCULATION = '''
def run(parameters):
    """Simplified progressive tax calculation.

    Parameters: income, jurisdiction, deductions (list of amounts).
    """
    income = parameters.get("income", 0)
    jurisdiction = parameters.get("jurisdiction", "US")
    deductions = parameters.get("deductions", [])

    total_deductions = sum(deductions)
    taxable_income = max(0, income - total_deductions)

    if taxable_income <= 10000:
        tax = taxable_income * 0.10
    elif taxable_income <= 50000:
        tax = 1000 + (taxable_income - 10000) * 0.15
    else:
        tax = 7000 + (taxable_income - 50000) * 0.25

    return {
        "jurisdiction": jurisdiction,
        "income": income,
        "total_deductions": total_deductions,
        "taxable_income": taxable_income,
        "tax_owed": tax,
        "effective_rate": (tax / income * 100) if income > 0 else 0,
    }
'''

_COMPLIANCE_CHECK = '''
def run(parameters):
    """Check each requirement id for an entity in a jurisdiction.

    Parameters: jurisdiction, entity_type, requirements (list of ids).
    """
    jurisdiction = parameters.get("jurisdiction", "US")
    entity_type = parameters.get("entity_type", "corporation")
    requirements = parameters.get("requirements", [])

    results = [
        {
            "requirement_id": req_id,
            "status": "compliant",
            "notes": f"Check passed for {req_id}",
        }
        for req_id in requirements
    ]

    return {
        "jurisdiction": jurisdiction,
        "entity_type": entity_type,
        "total_requirements": len(requirements),
        "compliant_count": len([r for r in results if r["status"] == "compliant"]),
        "results": results,
    }
'''

_DATA_ANALYSIS = '''
def run(parameters):
    """Summary statistics over a list of numbers or {"value": n} records.

    Parameters: dataset, analysis_type.
    """
    dataset = parameters.get("dataset", [])
    analysis_type = parameters.get("analysis_type", "summary")

    if not dataset:
        return {"error": "No dataset provided"}

    if isinstance(dataset[0], (int, float)):
        values = dataset
    elif isinstance(dataset[0], dict) and "value" in dataset[0]:
        values = [item["value"] for item in dataset if "value" in item]
    else:
        return {"error": "Unsupported dataset format"}

    return {
        "analysis_type": analysis_type,
        "count": len(values),
        "min": min(values) if values else None,
        "max": max(values) if values else None,
        "mean": sum(values) / len(values) if values else None,
        "sum": sum(values) if values else None,
    }
'''

ANALYSIS_TEMPLATES: dict[AnalysisType, str] = {
    AnalysisType.TAX_CALCULATION: _TAX_CALCULATION,
    AnalysisType.COMPLIANCE_CHECK: _COMPLIANCE_CHECK,
    AnalysisType.DATA_ANALYSIS: _DATA_ANALYSIS,
}

_RUNNER = """
try:
    result = run(params)
    {emit}
except Exception as e:
    print(f"Error: {{e}}", file=sys.stderr)
    sys.exit(1)
"""


def generate_analysis_code(
    analysis_type: AnalysisType | str,
    parameters: dict[str, Any],
    output_format: OutputFormat = "json",
) -> str | None:
    """Build the Python program for a templated analysis.

    Parameters are embedded as a JSON string literal and decoded inside the
    sandbox, so no parameter value is ever evaluated as code.

    Args:
        analysis_type: Analysis template to use
        parameters: Template parameters
        output_format: ``json`` prints ``json.dumps(result)``, otherwise ``print(result)``

    Returns:
        Program source, or None for ``custom`` and unknown types
    """
    try:
        template = ANALYSIS_TEMPLATES.get(AnalysisType(analysis_type))
    except ValueError:
        return None
    if template is None:
        return None

    params_literal = repr(json.dumps(parameters, indent=2))
    emit = "print(json.dumps(result, indent=2))" if output_format == "json" else "print(result)"

    return (
        "import json\n"
        "import sys\n\n"
        f"params = json.loads({params_literal})\n"
        f"{template}"
        f"{_RUNNER.format(emit=emit)}"
    )
