"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

PACKAGE_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    # API Keys
    google_api_key: str = ""

    # Rule tables and content library
    rules_dir: str = str(PACKAGE_ROOT / "rules")
    content_dir: str = str(PACKAGE_ROOT / "content" / "library")
    default_language: str = "en"
    content_timeout_s: float = 2.0

    # QA gate limits
    qa_max_critical_violations: int = 0
    qa_max_warning_violations: int = 5
    qa_max_validation_errors: int = 0
    qa_max_validation_warnings: int = 10
    qa_block_on_unresolved_placeholders: bool = False

    # LLM evaluator (advisory)
    llm_evaluator_enabled: bool = False
    llm_evaluator_can_block: bool = False
    gemini_model: str = "gemini-2.0-flash"
    llm_temperature: float = 0.1
    llm_timeout_s: float = 30.0
    llm_fallback_outcome: str = "FLAG"
    llm_skip_high_confidence_pass: bool = False
    llm_sampling_rate: float = 1.0

    # LLM evaluator thresholds
    llm_block_below: float = 6.0
    llm_flag_below: float = 8.0
    llm_dimension_block_below: float = 4.0
    llm_dimension_flag_below: float = 6.0
    llm_warning_issues_flag: int = 3

    # LLM evaluator dimension weights
    llm_w_professional_quality: float = 0.15
    llm_w_clinical_safety: float = 0.25
    llm_w_tone_appropriateness: float = 0.20
    llm_w_personalization: float = 0.15
    llm_w_patient_autonomy: float = 0.15
    llm_w_structure_completeness: float = 0.10

    # Storage paths
    sqlite_audit_db_path: str = "data/audits.db"
    persist_audits: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Auth / JWT
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry_minutes: int = 60
    api_keys: str = ""  # comma-separated list of valid API keys

    # Rate limiting
    rate_limit_requests_per_minute: int = 60
    slow_request_ms: float = 5000.0

    model_config = {"env_file": ".env", "env_prefix": "SMILE_"}

    @property
    def llm_weights(self) -> dict[str, float]:
        return {
            "professional_quality": self.llm_w_professional_quality,
            "clinical_safety": self.llm_w_clinical_safety,
            "tone_appropriateness": self.llm_w_tone_appropriateness,
            "personalization": self.llm_w_personalization,
            "patient_autonomy": self.llm_w_patient_autonomy,
            "structure_completeness": self.llm_w_structure_completeness,
        }
