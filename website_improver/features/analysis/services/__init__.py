"""
Analysis Services

Organized by responsibility:

1. scraping/ - Scraping API client
   - scraping_service.py: main page scrape and multi-page crawl

2. extraction/ - Parsing raw markup
   - content_extractor.py: headings, links, images, forms, navigation, assets, metadata

3. ai/ - Text-generation service
   - ai_advisor.py: issue hints and improvement suggestions, with rule-based fallback

4. scoring/ - Deterministic scores
   - scoring_engine.py: SEO, performance, accessibility and UX scores

5. Job lifecycle
   - job_store.py: persisted job state and owner-scoped reads
   - queue.py: publishing jobs to the analysis worker queue
   - orchestrator.py: admission (credit + job + enqueue) and the worker pipeline
   - accessibility.py: HEAD check used before starting an analysis
"""
