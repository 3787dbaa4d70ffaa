"""AWS Control Tower landing zone reconciliation and deployment."""
