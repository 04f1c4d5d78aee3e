# Import the orchestrator lazily so the ledger and domain layers load on their own
def __getattr__(name):
    if name == "ImportOrchestrator":
        from ledgersync.domain.importer import ImportOrchestrator
        return ImportOrchestrator
    if name == "load_config":
        from ledgersync.config import load_config
        return load_config
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
