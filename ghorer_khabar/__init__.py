"""
                Ghorer Khabar

Marketplace backend connecting home-kitchen chefs with customers
in Dhaka: onboarding, menus, subscriptions, checkout and reviews.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
