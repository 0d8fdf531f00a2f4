"""Response analysis.

Turns one raw LLM answer into per-sample KPI metrics:
  1. Citation extraction (native provider citations, markdown links, bare URLs)
  2. Brand detection (our brand and competitors, order of first mention)
  3. Heuristic scores: sentiment, prominence, alignment
  4. Optional embedding alignment (OpenAI embeddings + cosine)

Input:  response text + BrandContext
Output: KPIMetrics
"""
