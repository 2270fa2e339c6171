from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_NAME: str = "coursebot"
    ENV: str = "local"
    LOG_LEVEL: str | None = None
    DATA_DIR: str = "./data"
    DB_PATH: str = "./data/coursebot.sqlite3"

    # vector db
    VECTOR_DB_URL: str = "http://localhost:6333"
    VECTOR_DB_API_KEY: str | None = None
    VECTOR_COLLECTION: str = "course_documents"
    # Dropping the collection on a dimension change wipes every course's chunks.
    VECTOR_RECREATE_ON_DIM_MISMATCH: bool = True
    VECTOR_UPSERT_BATCH: int = 256
    VECTOR_SCROLL_PAGE: int = 1000
    VECTOR_SCROLL_MAX_PAGES: int = 500
    VECTOR_TIMEOUT_S: int = 10

    # embedding
    # Backends:
    # - ollama: uses Ollama /api/embed (falls back to /api/embeddings)
    # - openai: uses OpenAI embeddings
    EMBED_BACKEND: str = "ollama"  # ollama|openai
    OLLAMA_EMBED_MODEL: str = "nomic-embed-text"
    OPENAI_EMBED_MODEL: str = "text-embedding-3-small"
    EMBED_DIM: int = 768  # used when the model's dimension is not known
    EMBED_TIMEOUT_S: float = 120.0

    # llm
    LLM_PROVIDER: str = "ollama"  # ollama|openai
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.1"
    OLLAMA_NUM_PREDICT: int = 1000
    OLLAMA_TOP_P: float = 0.9
    OLLAMA_NUM_CTX: int = 32768
    OLLAMA_KEEP_ALIVE: str = "30m"
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_MAX_TOKENS: int = 1000
    GENERATION_TIMEOUT_S: float = 120.0

    # chunking
    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int = 200
    CHUNK_MIN: int = 100
    CHUNK_MAX_ITERATIONS: int = 10000

    # retrieval / chat knobs
    RETRIEVAL_TOP_K: int = 12
    CHAT_TEMPERATURE: float = 0.2
    MAX_CONTINUATIONS: int = 2
    TRUNCATION_MIN_CHARS: int = 300
    CONTINUATION_TAIL_CHARS: int = 200
    CHAT_GENERAL_KNOWLEDGE_FALLBACK: bool = False

    # CORS (for browser-based UIs)
    # Comma-separated list of allowed origins.
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
