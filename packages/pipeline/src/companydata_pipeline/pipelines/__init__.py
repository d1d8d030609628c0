"""
companydata_pipeline.pipelines — End-to-end import orchestrators.

Each pipeline module exports a run() function that takes the archive URI
and returns a LoadResult.

    from companydata_pipeline.pipelines import code_point, companies_house

    code_point.run("./data/codepo_gb.zip")
    companies_house.run("./data/BasicCompanyDataAsOneFile-2025-06-01.zip")
"""
