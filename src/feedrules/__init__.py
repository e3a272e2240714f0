"""feedrules: rule-based automations for articles and feeds."""
