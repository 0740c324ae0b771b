"""Environment configuration models.

Environment files are written in camelCase (``baseUrl``, ``slowMo``,
``enableScreenshots``); the models expose snake_case attributes and accept
either spelling.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RunnerName = Literal["behave", "cucumber-js"]


class _EnvModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class EnvironmentInfo(_EnvModel):
    """Human-facing environment identity."""

    name: str = Field(default="Development", description="Display name of the environment")
    description: str = Field(default="", description="Free-form description")


class ApplicationConfig(_EnvModel):
    """URLs of the application under test."""

    base_url: str = Field(default="https://github.com", description="Application root URL")
    search_url: str = Field(default="https://github.com/search", description="Search page URL")
    api_url: str = Field(default="https://api.github.com", description="Backend API URL")


class ViewportConfig(_EnvModel):
    """Browser viewport size in pixels."""

    width: int = Field(default=1280, ge=1)
    height: int = Field(default=720, ge=1)


class BrowserConfig(_EnvModel):
    """Browser launch flags.

    Attributes:
        headless: Run without a visible window.
        slow_mo: Delay between browser operations in milliseconds.
        timeout: Default action timeout in milliseconds.
        viewport: Viewport size.

    """

    headless: bool = True
    slow_mo: int = Field(default=0, ge=0)
    timeout: int = Field(default=30000, ge=0)
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)


class TestPolicyConfig(_EnvModel):
    """Test execution and retry policy.

    Attributes:
        timeout: Per-step timeout in milliseconds passed to the runner.
        retries: Default number of scenario-level retry attempts.
        retry_delay: Flat delay between retry attempts in seconds.
        retry_timeout_multiplier: Factor applied to ``timeout`` on retries.
        fail_fast: Stop a runner invocation at the first failing scenario.
        workers: Default parallel worker count.
        reporter: Reporter name forwarded to the runner.
        runner: BDD runner used for retry invocations.
        features_dir: Feature file directory relative to the project root.

    """

    timeout: int = Field(default=30000, ge=0)
    retries: int = Field(default=2, ge=0)
    retry_delay: float = Field(default=2.0, ge=0)
    retry_timeout_multiplier: float = Field(default=1.5, gt=0)
    fail_fast: bool = False
    workers: int = Field(default=2, ge=1)
    reporter: str = "json"
    runner: RunnerName = "behave"
    features_dir: str = "features"


class LoggingConfig(_EnvModel):
    """Logging and artifact capture flags."""

    level: str = "info"
    enable_screenshots: bool = True
    enable_video: bool = False
    enable_trace: bool = False


class UsersConfig(_EnvModel):
    """Test-data defaults."""

    default_user: str = "octocat"
    test_users: list[str] = Field(default_factory=list)


class EnvironmentConfig(_EnvModel):
    """Merged configuration for one named environment.

    Produced by EnvironmentConfigLoader from ``base`` plus ``<env>`` files.
    """

    environment: EnvironmentInfo = Field(default_factory=EnvironmentInfo)
    application: ApplicationConfig = Field(default_factory=ApplicationConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    test: TestPolicyConfig = Field(default_factory=TestPolicyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    users: UsersConfig = Field(default_factory=UsersConfig)

    def to_env(self, env_name: str, *, timeout_multiplier: float = 1.0) -> dict[str, str]:
        """Render the process environment a runner subprocess expects.

        Args:
            env_name: Environment name exported as TEST_ENV.
            timeout_multiplier: Factor applied to the step timeout (retries
                run with a longer timeout).

        Returns:
            Mapping of environment variable names to string values.

        """
        return {
            "TEST_ENV": env_name,
            "BASE_URL": self.application.base_url,
            "SEARCH_URL": self.application.search_url,
            "API_URL": self.application.api_url,
            "HEADLESS": str(self.browser.headless).lower(),
            "CUCUMBER_WORKERS": str(self.test.workers),
            "TEST_TIMEOUT": str(int(self.test.timeout * timeout_multiplier)),
            "RETRIES": str(self.test.retries),
            "LOG_LEVEL": self.logging.level,
        }
