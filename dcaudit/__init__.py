"""
dcaudit — point-in-time health audit of a single domain controller.

Pipeline: probes → ResultRecord → classification → rendered report →
alert tally → report sinks. Entry point: dcaudit.audit.main.
"""
