"""
Member activity bookkeeping for CultBot.
"""
