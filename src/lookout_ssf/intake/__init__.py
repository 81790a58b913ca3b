"""Intake boundary for risk change notifications."""

from lookout_ssf.intake.service import IntakeResult, IntakeService, parse_intake_body

__all__ = ["IntakeResult", "IntakeService", "parse_intake_body"]
