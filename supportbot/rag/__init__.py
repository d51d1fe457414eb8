"""RAG package for embeddings, knowledge storage, retrieval and orchestration."""
