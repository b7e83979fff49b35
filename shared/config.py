"""
Application configuration settings
"""
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env")
    
    PROJECT_NAME: str = "Loan Lifecycle Chaincode"
    
    # Chaincode identity on the channel
    CHAINCODE_NAME: str = "loan"
    CHANNEL_NAME: str = "mychannel"
    
    # Local world state used by the CLI harness
    WORLD_STATE_URL: str = "sqlite:///./world_state.db"
    
    # Caller-side resubmission after MVCC conflicts
    SUBMIT_MAX_ATTEMPTS: int = 3
    SUBMIT_BACKOFF_MULTIPLIER: float = 0.1
    SUBMIT_BACKOFF_MAX: float = 2.0
    
    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()
