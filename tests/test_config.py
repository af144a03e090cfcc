from __future__ import annotations

import os
from unittest.mock import patch

from extreme_search.config import Settings


def test_defaults_match_pipeline_limits():
    with patch.dict(os.environ, {}, clear=True):
        config = Settings(_env_file=None)

    assert config.search_max_results_per_query == 2
    assert config.content_max_chars == 1500
    assert config.agent_max_steps == 4
    assert config.synthesis_max_sources == 10
    assert config.report_source_chars == 1500


def test_env_overrides_and_list_properties():
    env = {
        "SEARCH_PROVIDER": "brave",
        "CORS_ORIGINS": "http://a.test, http://b.test",
        "TOOL_CAPABLE_MODEL_MARKERS": "Gemini, ,claude",
        "SANDBOX_PREINSTALLED_LIBRARIES": "pandas, numpy",
    }
    with patch.dict(os.environ, env, clear=True):
        config = Settings(_env_file=None)

    assert config.search_provider == "brave"
    assert config.cors_origin_list == ["http://a.test", "http://b.test"]
    assert config.tool_capable_model_list == ["gemini", "claude"]
    assert config.preinstalled_library_list == ["pandas", "numpy"]
