"""Runs one webhook event end to end."""

import structlog

from start_stop.adapters.wallet_store import WalletStore
from start_stop.config.settings import PluginEnv, PluginInputs, StartStopSettings
from start_stop.engine import PluginContext, dispatch, parse_event
from start_stop.models.domain import HandlerResult
from start_stop.providers.github_rest import GitHubIssueTracker
from start_stop.utils.logging_config import bind_request_context

log = structlog.get_logger(__name__)


async def run_plugin(inputs: PluginInputs, settings: StartStopSettings, env: PluginEnv) -> HandlerResult:
    """Dispatch the event in ``inputs`` with clients built from the request.

    The GitHub client authenticates with the token the host sent for this
    event. Errors raised by the handlers propagate to the caller.
    """
    bind_request_context(event_name=inputs.event_name, state_id=inputs.state_id)
    event = parse_event(inputs.event_name, inputs.event_payload)
    log.info("plugin_started", event_type=type(event).__name__)

    async with (
        GitHubIssueTracker(inputs.auth_token, env.github_api_url) as tracker,
        WalletStore(env.supabase_url, env.supabase_key) as wallets,
    ):
        context = PluginContext(tracker=tracker, wallets=wallets, settings=settings)
        result = await dispatch(context, event)

    log.info("plugin_finished", status=int(result.status), output=result.output)
    return result
