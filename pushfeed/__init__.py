"""Push-event action pipeline: activity feed, issue linking and webhooks."""
