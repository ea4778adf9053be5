from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./approvals.sqlite3"

    # Logging
    log_level: str = "INFO"

    # Notification service
    notification_base_url: str | None = None
    notification_timeout_sec: float = 10.0
    notification_retry_interval_sec: float = 30.0
    notification_max_pending: int = 1000

    # Identity / role directory (JSON file: {"<actor id>": ["<role>", ...]})
    role_directory_file: str | None = None

    # Reimbursement routing
    reimbursement_hr_threshold: float = 5000
    reimbursement_finance_threshold: float = 25000
    reimbursement_sensitive_categories: list[str] = ["Medical", "Training"]

    # Regularization routing
    regularization_hr_only_types: list[str] = ["System Error", "Work From Home"]

    # Permission routing
    lead_level_roles: list[str] = ["TeamLeader"]

    # Payout bookkeeping
    payout_roles: list[str] = ["Finance", "Admin"]

    # Workflow behaviour
    auto_approve_empty_chain: bool = True
    max_transition_retries: int = 2

    class Config:
        env_file = ".env"
        env_prefix = "APP_"


settings = Settings()
