from contract_loader.config.settings import ImporterConfig, get_config, set_config
