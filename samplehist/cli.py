"""Command-line entry point.

Estimate value frequencies over a line-delimited file or stdin::

    samplehist input_file=/var/log/nginx/access.log 'fields=[0,8]' num_results=5
    zcat access.log.gz | samplehist sample_size=5000 output_format=json

Any key of ``conf/config.yaml`` can be overridden on the command line.
"""

from __future__ import annotations

import logging
import sys

import hydra
from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

from samplehist.config import SampleConfig
from samplehist.data.records import RecordParser
from samplehist.errors import ConfigurationError
from samplehist.pipeline import run_sampling
from samplehist.report import render_json, render_table

logger = logging.getLogger(__name__)


def build_config(cfg: DictConfig) -> SampleConfig:
    """Resolve a composed Hydra config into a validated :class:`SampleConfig`."""
    container = OmegaConf.to_container(cfg, resolve=True)
    return SampleConfig.from_mapping(container)


def run(config: SampleConfig) -> str:
    """Sample the configured input and return the rendered report."""
    result = run_sampling(config)
    keys = RecordParser(fields=config.fields, separator=config.field_separator).keys
    if config.output_format == "json":
        return render_json(result, keys, config.num_results)
    return render_table(result, keys, config.num_results)


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig) -> None:
    """Sample the input and print the most frequent values per key."""
    load_dotenv()
    try:
        config = build_config(cfg)
    except ConfigurationError as exc:
        logger.error(f"Invalid configuration: {exc}")
        sys.exit(2)
    print(run(config))


if __name__ == "__main__":
    main()
