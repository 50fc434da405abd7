"""Run-level configuration objects."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from samplehist.errors import ConfigurationError

OUTPUT_FORMATS = ("table", "json")

# 32 MiB, the smallest byte range worth handing to a separate worker.
DEFAULT_SPLIT_SIZE = 33_554_432


@dataclass
class SampleConfig:
    """Configuration for one sampling run.

    Attributes:
        sample_size: Reservoir capacity ``k`` shared by every key.
        num_results: Number of top values reported per key.
        fields: Field indexes to sample (0-based). Empty samples whole lines.
        field_separator: Field separator; ``None`` splits on runs of whitespace.
        input_file: Path of a finite input file, or ``None`` to read stdin.
        output_format: ``table`` or ``json``.
        split_size: Minimum chunk size in bytes for parallel file sampling.
        workers: Worker process count; ``None`` uses the CPU count.
        chunks_per_worker: Target number of chunks handed to each worker.
        skip_ahead: Use algorithm L (skip-ahead) in the stream sampler.
        seed: Root seed for every random generator in the run.
        progress: Show a progress bar while chunks complete.
    """

    sample_size: int = 1000
    num_results: int = 10
    fields: tuple[int, ...] = field(default_factory=tuple)
    field_separator: str | None = None
    input_file: str | None = None
    output_format: str = "table"
    split_size: int = DEFAULT_SPLIT_SIZE
    workers: int | None = None
    chunks_per_worker: int = 2
    skip_ahead: bool = True
    seed: int | None = None
    progress: bool = False

    def __post_init__(self) -> None:
        self.fields = tuple(int(f) for f in self.fields)
        if self.sample_size <= 0:
            raise ConfigurationError(f"sample_size must be positive, got {self.sample_size}")
        if self.num_results <= 0:
            raise ConfigurationError(f"num_results must be positive, got {self.num_results}")
        if self.num_results > self.sample_size:
            raise ConfigurationError("num_results must be <= sample_size")
        if any(f < 0 for f in self.fields):
            raise ConfigurationError(f"field indexes must be >= 0, got {list(self.fields)}")
        if len(set(self.fields)) != len(self.fields):
            raise ConfigurationError(f"field indexes must be unique, got {list(self.fields)}")
        if self.field_separator == "":
            raise ConfigurationError("field_separator must not be empty")
        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigurationError(
                f"Unknown output_format: {self.output_format!r} (expected one of {OUTPUT_FORMATS})"
            )
        if self.split_size <= 0:
            raise ConfigurationError(f"split_size must be positive, got {self.split_size}")
        if self.workers is not None and self.workers <= 0:
            raise ConfigurationError(f"workers must be positive, got {self.workers}")
        if self.chunks_per_worker <= 0:
            raise ConfigurationError(
                f"chunks_per_worker must be positive, got {self.chunks_per_worker}"
            )

    @property
    def n_workers(self) -> int:
        """Resolved worker count."""
        return self.workers if self.workers is not None else (os.cpu_count() or 1)

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> SampleConfig:
        """Build a config from a plain mapping such as a resolved Hydra config.

        Keys that are not configuration fields (e.g. the ``hydra`` node) are
        ignored. ``workers`` and ``seed`` may arrive as strings when they come
        from environment variables, and a single field index may be given
        without a list.

        Raises:
            ConfigurationError: If a value has the wrong type or is out of range.
        """
        known = {name for name in cls.__dataclass_fields__}
        kwargs = {key: value for key, value in values.items() if key in known}
        try:
            for key in ("workers", "seed"):
                if isinstance(kwargs.get(key), str):
                    kwargs[key] = int(kwargs[key])
            fields = kwargs.pop("fields", None)
            if isinstance(fields, (int, str)):
                kwargs["fields"] = (fields,)
            elif fields is not None:
                kwargs["fields"] = tuple(fields)
            return cls(**kwargs)
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid configuration value: {exc}") from exc
