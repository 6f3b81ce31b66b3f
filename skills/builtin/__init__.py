"""
skills/builtin/ — Plugbot capability skills

    generate_images    ImageGenerationSkill   (always registered)
    sql_query          SqlQuerySkill          (SQL_CONNECTION_STRING)
    search_documents   DocumentSearchSkill    (SEARCH_API_KEY + SEARCH_API_ENDPOINT)
    web_search         WebSearchSkill         (BING_API_KEY)
    answer_directly    AnswerDirectlySkill    (direct planner only)
"""
