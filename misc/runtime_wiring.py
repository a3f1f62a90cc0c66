from __future__ import annotations

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_memory import register as register_memory
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeDeps


def wire_bot_runtime(
    bot,
    *,
    deps: RuntimeDeps,
    send_chunked,
    user_is_superuser,
) -> None:
    def in_allowed_channel(ctx) -> bool:
        if not deps.allowed_channel_ids:
            return True
        try:
            return int(ctx.channel.id) in deps.allowed_channel_ids
        except (AttributeError, TypeError, ValueError):
            return False

    command_deps = CommandDeps(
        memory_lock=deps.memory_lock,
        memory_store=deps.memory_store,
        send_chunked=send_chunked,
        now=deps.now,
    )
    command_gates = CommandGates(
        in_allowed_channel=in_allowed_channel,
        allowed_channel_ids=deps.allowed_channel_ids,
        user_is_superuser=user_is_superuser,
    )

    register_memory(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_runtime_events(
        bot,
        deps=deps,
    )
