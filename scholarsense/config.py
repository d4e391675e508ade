"""
Configuration management for ScholarSense
支持环境变量、配置文件、运行时配置的统一管理
"""

from pathlib import Path
from typing import Literal
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SpiderConfig(BaseSettings):
    """Spider configuration"""
    concurrent_tasks: int = Field(default=5, ge=1, description="Number of concurrent detail-page workers")
    navigation_timeout: float = Field(default=30.0, gt=0, description="Navigation timeout (seconds)")
    element_timeout: float = Field(default=10.0, gt=0, description="Timeout waiting for a required element (seconds)")
    pagination_timeout: float = Field(default=2.0, gt=0,
                                      description="Timeout waiting for the load-more control to re-enable (seconds)")
    max_pagination_rounds: int = Field(default=200, ge=1, description="Maximum load-more activations")
    stall_policy: Literal["accept", "fail"] = Field(
        default="accept",
        description="How a stalled pagination control is treated (accept partial list / fail the scrape)"
    )
    headless: bool = Field(default=True, description="Run the browser in headless mode")


class SelectorConfig(BaseSettings):
    """CSS selectors for the profile and publication detail pages"""
    profile_name: str = Field(default="#gsc_prf_in", description="Researcher name")
    profile_institution: str = Field(default=".gsc_prf_ila", description="Affiliation link")
    citation_count: str = Field(
        default="#gsc_rsb_st > tbody > tr:nth-child(1) > td:nth-child(2)",
        description="All-time citation count cell"
    )
    h_index: str = Field(
        default="#gsc_rsb_st > tbody > tr:nth-child(2) > td:nth-child(2)",
        description="All-time h-index cell"
    )
    publication_anchor: str = Field(default="td.gsc_a_t > a", description="Publication links in the list view")
    load_more: str = Field(default="#gsc_bpf_more", description="Show-more button")
    detail_title: str = Field(default="#gsc_oci_title", description="Detail page title marker")
    detail_title_link: str = Field(default="a", description="Canonical link inside the title marker")
    field_block: str = Field(default="#gsc_oci_table > div.gs_scl", description="Repeating label/value block")
    field_label: str = Field(default="div.gsc_oci_field", description="Label inside a field block")
    field_value: str = Field(default="div.gsc_oci_value", description="Value inside a field block")


class Config(BaseSettings):
    """Main configuration for ScholarSense"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False
    )

    # Basic settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Log level")
    log_file: str = Field(default="logs/scholarsense.log", description="Log file path")

    # Scrape behaviour
    profile_url_pattern: str = Field(
        default=r"^https://scholar\.google\.com/citations\?user=",
        description="Prefix pattern every profile URL must match"
    )
    sort_by_discovery: bool = Field(
        default=False,
        description="Order publications by their position in the profile list instead of completion order"
    )

    # Sub-configurations
    spider: SpiderConfig = Field(default_factory=SpiderConfig)
    selectors: SelectorConfig = Field(default_factory=SelectorConfig)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._ensure_directories()

    def _ensure_directories(self):
        """Ensure all required directories exist"""
        Path(self.log_file).parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_file(cls, config_file: str) -> "Config":
        """Load configuration from file"""
        import yaml
        with open(config_file, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
        return cls(**config_data)


# Global configuration instance
config = Config()
