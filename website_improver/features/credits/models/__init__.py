from website_improver.features.credits.models.user_account import PlanTier, UserAccount

__all__ = ["PlanTier", "UserAccount"]
