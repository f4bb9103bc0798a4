"""
Helpers for responding to Discord interactions without raising on expiry.
"""

import logging

import discord

logger = logging.getLogger("rift_bot.utils.interaction_safety")


async def safe_defer(interaction: discord.Interaction, ephemeral: bool = False) -> bool:
    """
    Defer an interaction, tolerating one that already expired or was answered.

    Returns:
        True if the caller may continue with followup messages
    """
    if interaction.response.is_done():
        return True
    try:
        await interaction.response.defer(ephemeral=ephemeral)
        return True
    except discord.NotFound:
        logger.warning(f"Interaction for {interaction.user.id} expired before defer")
        return False
    except discord.HTTPException as exc:
        logger.error(f"Failed to defer interaction: {exc}")
        return False
