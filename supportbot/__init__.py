"""SupportBot: customer-support chatbot backend with a RAG answering core."""
