"""
Coverage Desk — initiation-of-coverage memo engine.

    from coverage_engine.orchestrator.report_orchestrator import ReportOrchestrator
    result = await orchestrator.generate("AVGO")
"""

__version__ = "1.0.0"
