"""GraphQL documents sent to the DeepSource API.

Kept in one place so the retry layer's operation detection and the tests
see exactly what goes over the wire.
"""

# =============================================================================
# Projects
# =============================================================================

VIEWER_PROJECTS_QUERY = """
query {
  viewer {
    email
    accounts {
      edges {
        node {
          login
          repositories(first: 100) {
            edges {
              node {
                name
                defaultBranch
                dsn
                isPrivate
                isActivated
                vcsProvider
              }
            }
          }
        }
      }
    }
  }
}
"""

# =============================================================================
# Issues
# =============================================================================

REPOSITORY_ISSUES_QUERY = """
query getRepositoryIssues(
  $login: String!
  $name: String!
  $provider: VCSProvider!
  $analyzerIn: [String!]
  $tags: [String!]
  $path: String
  $first: Int
  $after: String
  $last: Int
  $before: String
) {
  repository(login: $login, name: $name, vcsProvider: $provider) {
    name
    issues(
      analyzerIn: $analyzerIn
      tags: $tags
      path: $path
      first: $first
      after: $after
      last: $last
      before: $before
    ) {
      pageInfo {
        hasNextPage
        hasPreviousPage
        startCursor
        endCursor
      }
      totalCount
      edges {
        node {
          id
          title
          shortcode
          category
          severity
          occurrences(first: 1) {
            edges {
              node {
                id
                status
                issueText
                filePath
                beginLine
                tags
              }
            }
          }
        }
      }
    }
  }
}
"""

# =============================================================================
# Runs
# =============================================================================

RUN_FIELDS = """
  id
  runUid
  commitOid
  branchName
  baseOid
  status
  createdAt
  updatedAt
  finishedAt
  summary {
    occurrencesIntroduced
    occurrencesResolved
    occurrencesSuppressed
    occurrenceDistributionByAnalyzer {
      analyzerShortcode
      introduced
    }
    occurrenceDistributionByCategory {
      category
      introduced
    }
  }
  repository {
    name
    id
  }
"""

REPOSITORY_RUNS_QUERY = f"""
query getRepositoryRuns(
  $login: String!
  $name: String!
  $provider: VCSProvider!
  $first: Int
  $after: String
  $last: Int
  $before: String
) {{
  repository(login: $login, name: $name, vcsProvider: $provider) {{
    name
    id
    runs(first: $first, after: $after, last: $last, before: $before) {{
      edges {{
        node {{{RUN_FIELDS}}}
      }}
      pageInfo {{
        hasNextPage
        hasPreviousPage
        startCursor
        endCursor
      }}
      totalCount
    }}
  }}
}}
"""

RUN_BY_UID_QUERY = f"""
query getRunByUid($runUid: UUID!) {{
  run(runUid: $runUid) {{{RUN_FIELDS}}}
}}
"""

RUN_BY_COMMIT_QUERY = f"""
query getRunByCommit($commitOid: String!) {{
  runByCommit(commitOid: $commitOid) {{{RUN_FIELDS}}}
}}
"""

RUN_OCCURRENCES_QUERY = """
query getRunOccurrences($runUid: UUID!, $first: Int) {
  run(runUid: $runUid) {
    checks {
      edges {
        node {
          analyzer {
            shortcode
          }
          occurrences(first: $first) {
            edges {
              node {
                id
                issue {
                  id
                  shortcode
                  title
                  category
                  severity
                }
                path
                beginLine
                issueText
              }
            }
          }
        }
      }
    }
  }
}
"""


# =============================================================================
# Metrics
# =============================================================================

QUALITY_METRICS_QUERY = """
query getQualityMetrics(
  $login: String!
  $name: String!
  $provider: VCSProvider!
  $shortcodeIn: [String!]
) {
  repository(login: $login, name: $name, vcsProvider: $provider) {
    id
    metrics(shortcodeIn: $shortcodeIn) {
      shortcode
      name
      description
      isReported
      isThresholdEnforced
      direction
      unit
      items {
        id
        key
        name
        value
        thresholdValue
        thresholdStatus
      }
    }
  }
}
"""

UPDATE_METRIC_THRESHOLD_MUTATION = """
mutation updateMetricThreshold(
  $repositoryId: ID!
  $metricKey: String!
  $metricShortcode: String!
  $thresholdValue: Float
) {
  updateMetricThreshold(
    repositoryId: $repositoryId
    metricKey: $metricKey
    metricShortcode: $metricShortcode
    thresholdValue: $thresholdValue
  ) {
    success
  }
}
"""

UPDATE_METRIC_SETTING_MUTATION = """
mutation updateMetricSetting(
  $repositoryId: ID!
  $metricShortcode: String!
  $isReported: Boolean!
  $isThresholdEnforced: Boolean!
) {
  updateMetricSetting(
    repositoryId: $repositoryId
    metricShortcode: $metricShortcode
    isReported: $isReported
    isThresholdEnforced: $isThresholdEnforced
  ) {
    success
  }
}
"""

METRIC_HISTORY_QUERY = """
query getMetricHistory(
  $login: String!
  $name: String!
  $provider: VCSProvider!
  $metricShortcode: String!
  $metricKey: String!
  $first: Int
) {
  repository(login: $login, name: $name, vcsProvider: $provider) {
    metrics(shortcodeIn: [$metricShortcode]) {
      shortcode
      name
      unit
      direction
      items(key: $metricKey) {
        key
        thresholdValue
        values(first: $first) {
          edges {
            node {
              id
              value
              commitOid
              measuredAt
            }
          }
        }
      }
    }
  }
}
"""

# =============================================================================
# Security
# =============================================================================

COMPLIANCE_REPORT_QUERY_TEMPLATE = """
query getComplianceReport($login: String!, $name: String!, $provider: VCSProvider!) {{
  repository(login: $login, name: $name, vcsProvider: $provider) {{
    name
    id
    reports {{
      {report_field} {{
        status
        categories {{
          name
          status
          criticalCount: count(severity: CRITICAL)
          majorCount: count(severity: MAJOR)
          minorCount: count(severity: MINOR)
          total: count
        }}
      }}
    }}
  }}
}}
"""

DEPENDENCY_VULNERABILITIES_QUERY = """
query getDependencyVulnerabilities(
  $login: String!
  $name: String!
  $provider: VCSProvider!
  $first: Int
  $after: String
  $last: Int
  $before: String
) {
  repository(login: $login, name: $name, vcsProvider: $provider) {
    dependencyVulnerabilities(first: $first, after: $after, last: $last, before: $before) {
      edges {
        node {
          id
          package {
            id
            ecosystem
            name
          }
          packageVersion {
            id
            version
          }
          vulnerability {
            id
            identifier
            summary
            details
            severity
            cvssV3BaseScore
            cvssV2BaseScore
            fixedVersions
            aliases
            referenceUrls
          }
        }
      }
      pageInfo {
        hasNextPage
        hasPreviousPage
        startCursor
        endCursor
      }
      totalCount
    }
  }
}
"""
