"""
Development services.

Every multi-row change of the R&D workflow lives here. Views call these
functions; status changes always go through rd_core.workflows.executor.
"""
