"""Configuration for the start/stop plugin.

Key Components:
    - StartStopSettings: Plugin settings sent by the host with each event
    - PluginEnv: Environment secrets (wallet storage credentials, API url)
    - PluginInputs: Shape of the request body
    - decode_inputs: Validates settings and environment together

Example:
    >>> from start_stop.config import decode_settings
    >>> settings = decode_settings({"maxConcurrentTasks": {"member": 4}})
    >>> settings.max_concurrent_tasks["member"]
    4
"""

from start_stop.config.settings import (
    PluginEnv,
    PluginInputs,
    StartStopSettings,
    decode_env,
    decode_inputs,
    decode_settings,
)

__all__ = [
    "PluginEnv",
    "PluginInputs",
    "StartStopSettings",
    "decode_env",
    "decode_inputs",
    "decode_settings",
]
