"""
Application configuration for the charging station analytics engine.

Provides environment-aware settings with conservative defaults. All scoring
weights, windows and anomaly thresholds are configurable to avoid hard-coded
"magic numbers" inside the detectors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReliabilityConfig(BaseModel):
	"""
	Reliability scoring model.

	Notes:
	- window_days: trailing analysis window for status events and reports.
	- min_data_points: sample size at which the confidence factor reaches 1.0.
	- max_transitions / max_reports: caps for the stability and report sub-scores.
	- neutral_uptime: uptime used when the window holds no status events.
	"""

	window_days: int = Field(30, ge=1)
	min_data_points: int = Field(10, ge=1)
	weight_uptime: float = Field(0.6, ge=0.0, le=1.0)
	weight_stability: float = Field(0.2, ge=0.0, le=1.0)
	weight_reports: float = Field(0.2, ge=0.0, le=1.0)
	max_transitions: int = Field(20, ge=1)
	max_reports: int = Field(10, ge=1)
	neutral_uptime: float = Field(50.0, ge=0.0, le=100.0)

	@model_validator(mode="after")
	def _weights_sum_to_one(self) -> "ReliabilityConfig":
		total = self.weight_uptime + self.weight_stability + self.weight_reports
		if abs(total - 1.0) > 1e-6:
			raise ValueError(f"Reliability weights must sum to 1.0, got {total}")
		return self


class FlappingConfig(BaseModel):
	"""
	Status flapping thresholds.

	A connector flaps when it changes status at least `threshold` times inside
	the trailing window.
	"""

	window_hours: int = Field(24, ge=1)
	threshold: int = Field(5, ge=1)
	medium_transitions: int = Field(10, ge=1)
	high_transitions: int = Field(15, ge=1)


class DowntimeConfig(BaseModel):
	"""
	Extended downtime thresholds (hours).
	"""

	window_hours: int = Field(72, ge=1)
	threshold_hours: float = Field(24.0, gt=0.0)
	medium_hours: float = Field(48.0, gt=0.0)
	high_hours: float = Field(72.0, gt=0.0)


class ReportSpikeConfig(BaseModel):
	"""
	Report spike thresholds.

	Rationale:
	- The recent window is compared against the remainder of the comparison
	  window, so the baseline never overlaps the recent week.
	- min_reports keeps one or two stray reports from raising an alert.
	"""

	recent_days: int = Field(7, ge=1)
	comparison_days: int = Field(30, ge=1)
	spike_threshold: float = Field(2.0, gt=0.0)
	min_reports: int = Field(3, ge=1)
	medium_factor: float = Field(3.0, gt=0.0)
	high_factor: float = Field(5.0, gt=0.0)


class PatternConfig(BaseModel):
	"""
	Day-of-week pattern deviation settings.
	"""

	window_days: int = Field(14, ge=1)
	min_history: int = Field(10, ge=1)
	min_day_samples: int = Field(10, ge=1)
	severity_score: float = Field(0.5, ge=0.0)


class BatchConfig(BaseModel):
	"""
	Batch execution settings.

	Notes:
	- max_workers: 1 runs stations sequentially; more uses a thread pool.
	- station_timeout_seconds: optional per-station result timeout, pool mode
	  only. It counts from when the runner starts waiting on that station and
	  does not stop the worker thread.
	- upsert_retries: attempts for an anomaly upsert that hits a conflict.
	"""

	max_workers: int = Field(1, ge=1)
	station_timeout_seconds: Optional[float] = Field(None, gt=0.0)
	upsert_retries: int = Field(3, ge=1)


class Config(BaseSettings):
	"""
	Global configuration with environment overrides.
	"""

	model_config = SettingsConfigDict(
		env_prefix="CHARGEPULSE_",
		env_file=".env",
		env_nested_delimiter="__",
		extra="ignore",
	)

	log_level: str = Field("INFO", description="Default logging level")
	logs_dir: Path = Field(Path("logs"), description="Directory for log files")
	reliability: ReliabilityConfig = ReliabilityConfig()
	flapping: FlappingConfig = FlappingConfig()
	downtime: DowntimeConfig = DowntimeConfig()
	report_spike: ReportSpikeConfig = ReportSpikeConfig()
	pattern: PatternConfig = PatternConfig()
	batch: BatchConfig = BatchConfig()

	def model_post_init(self, __context: object) -> None:
		self.logs_dir.mkdir(parents=True, exist_ok=True)


config = Config()
