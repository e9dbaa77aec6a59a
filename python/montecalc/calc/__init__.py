"""montecalc.calc - Formula language and Monte-Carlo evaluation engine."""

from montecalc.calc._errors import (
    DomainError,
    DuplicateCellError,
    FormulaError,
    FormulaSyntaxError,
    LexError,
    SimulationCancelled,
    UndefinedVariableError,
    UnknownFunctionError,
)
from montecalc.calc._evaluator import SimulationEngine, simulate
from montecalc.calc._functions import BuiltinFunction, FunctionRegistry, is_builtin
from montecalc.calc._graph import DependencyGraph
from montecalc.calc._lexer import tokenize
from montecalc.calc._nodes import (
    BinaryOp,
    Comparison,
    Expression,
    FunctionCall,
    LogicalOp,
    NumberLiteral,
    VariableRef,
)
from montecalc.calc._parser import FormulaParser, parse, parse_formula
from montecalc.calc._protocol import (
    CalcEngine,
    DistributionSummary,
    Histogram,
    SensitivityRecord,
    SimulationResult,
)
from montecalc.calc._sensitivity import analyze, rank_sensitivities
from montecalc.calc._summary import histogram, summarize

__all__ = [
    "BinaryOp",
    "BuiltinFunction",
    "CalcEngine",
    "Comparison",
    "DependencyGraph",
    "DistributionSummary",
    "DomainError",
    "DuplicateCellError",
    "Expression",
    "FormulaError",
    "FormulaParser",
    "FormulaSyntaxError",
    "FunctionCall",
    "FunctionRegistry",
    "Histogram",
    "LexError",
    "LogicalOp",
    "NumberLiteral",
    "SensitivityRecord",
    "SimulationCancelled",
    "SimulationEngine",
    "SimulationResult",
    "UndefinedVariableError",
    "UnknownFunctionError",
    "VariableRef",
    "analyze",
    "histogram",
    "is_builtin",
    "parse",
    "parse_formula",
    "rank_sensitivities",
    "simulate",
    "summarize",
    "tokenize",
]
