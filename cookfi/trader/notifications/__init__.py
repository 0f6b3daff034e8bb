from cookfi.trader.notifications.twitter import TwitterNotifier

__all__ = ["TwitterNotifier"]
