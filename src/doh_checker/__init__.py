"""
DoH Checker - domain status inference over DNS-over-HTTPS.

This package infers whether a domain is registered, available, premium or
parked from public DoH resolver answers, without contacting WHOIS servers
or registrars.
"""

__version__ = "0.1.0"
__author__ = "DoH Checker Team"

from doh_checker.exceptions import (
    DohCheckerError,
    ValidationError,
    ConfigurationError,
    MethodNotAllowedError,
    TransportError,
    NetworkError,
    DohTimeoutError,
    DnsProtocolError,
)
from doh_checker.enums import (
    DomainStatus,
    Confidence,
    ErrorCategory,
    RecordType,
    DnsRcode,
    SignalCategory,
    CheckStage,
    LogLevel,
    DomainValidationErrorCode,
)
from doh_checker.config import (
    ProviderConfig,
    RetryConfig,
    HeuristicsConfig,
    CacheConfig,
    LoggingConfig,
    SystemConfig,
    DEFAULT_PROVIDERS,
)
from doh_checker.models import (
    DnsQuestion,
    ResourceRecord,
    DnsFlags,
    DnsResponse,
    ClassifiedError,
    ProviderOutcome,
    ParkingSignal,
    DomainResult,
    ProgressState,
    GroupedResults,
    CacheEntry,
)
from doh_checker.error_classifier import (
    classify_error,
    classify_rcode,
)
from doh_checker.providers import (
    DohProvider,
    ProviderRegistry,
    json_query_url,
)
from doh_checker.doh_client import (
    DohClient,
    parse_json_envelope,
)
from doh_checker.audit_logger import (
    AuditLogger,
    LogEntry,
)
from doh_checker.retry_manager import (
    RetryManager,
    RetryResult,
)
from doh_checker.wildcard_detector import (
    WildcardDetector,
)
from doh_checker.pattern_analyzer import (
    PatternAnalyzer,
    PatternRule,
    PATTERN_RULES,
    KNOWN_PARKING_NAMESERVERS,
    is_parking_nameserver,
)
from doh_checker.decision_engine import (
    DecisionEngine,
    ClassificationContext,
    ClassificationRule,
    CLASSIFICATION_RULES,
)
from doh_checker.domain_validator import (
    DomainValidator,
    BatchInput,
)
from doh_checker.orchestrator import (
    QueryOrchestrator,
)
from doh_checker.result_cache import (
    ResultCache,
)
from doh_checker.batch_coordinator import (
    BatchCoordinator,
    ProgressTracker,
)
from doh_checker.self_test import (
    SelfTest,
    SelfTestResult,
    ProviderTestResult,
    ConfigValidationResult,
    run_self_test,
)
from doh_checker.cli import (
    main as cli_main,
    create_parser,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)

__all__ = [
    # Exceptions
    "DohCheckerError",
    "ValidationError",
    "ConfigurationError",
    "MethodNotAllowedError",
    "TransportError",
    "NetworkError",
    "DohTimeoutError",
    "DnsProtocolError",
    # Enums
    "DomainStatus",
    "Confidence",
    "ErrorCategory",
    "RecordType",
    "DnsRcode",
    "SignalCategory",
    "CheckStage",
    "LogLevel",
    "DomainValidationErrorCode",
    # Configuration
    "ProviderConfig",
    "RetryConfig",
    "HeuristicsConfig",
    "CacheConfig",
    "LoggingConfig",
    "SystemConfig",
    "DEFAULT_PROVIDERS",
    # Models
    "DnsQuestion",
    "ResourceRecord",
    "DnsFlags",
    "DnsResponse",
    "ClassifiedError",
    "ProviderOutcome",
    "ParkingSignal",
    "DomainResult",
    "ProgressState",
    "GroupedResults",
    "CacheEntry",
    # Error classification
    "classify_error",
    "classify_rcode",
    # Providers
    "DohProvider",
    "ProviderRegistry",
    "json_query_url",
    # DoH Client
    "DohClient",
    "parse_json_envelope",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Retry Manager
    "RetryManager",
    "RetryResult",
    # Wildcard Detector
    "WildcardDetector",
    # Pattern Analyzer
    "PatternAnalyzer",
    "PatternRule",
    "PATTERN_RULES",
    "KNOWN_PARKING_NAMESERVERS",
    "is_parking_nameserver",
    # Decision Engine
    "DecisionEngine",
    "ClassificationContext",
    "ClassificationRule",
    "CLASSIFICATION_RULES",
    # Domain Validator
    "DomainValidator",
    "BatchInput",
    # Orchestrator
    "QueryOrchestrator",
    # Cache / Batch
    "ResultCache",
    "BatchCoordinator",
    "ProgressTracker",
    # Self-Test
    "SelfTest",
    "SelfTestResult",
    "ProviderTestResult",
    "ConfigValidationResult",
    "run_self_test",
    # CLI
    "cli_main",
    "create_parser",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
]
