"""NerdGraph query documents. Values travel as GraphQL variables, never interpolated."""

from __future__ import annotations

from typing import Any, Dict, Optional

_CONDITION_FIELDS = """
          id
          name
          description
          enabled
          type
          runbookUrl
          policyId
          nrql { query }
          terms {
            operator
            threshold
            priority
            thresholdDuration
            thresholdOccurrences
          }
          entity { guid name type domain }
"""

CONDITIONS_QUERY = (
    """
query NrqlConditions($accountId: Int!, $cursor: String) {
  actor {
    account(id: $accountId) {
      alerts {
        nrqlConditionsSearch(cursor: $cursor) {
          nrqlConditions {"""
    + _CONDITION_FIELDS
    + """          }
          nextCursor
          totalCount
        }
      }
    }
  }
}
"""
)

CONDITIONS_BY_POLICY_QUERY = (
    """
query NrqlConditionsByPolicy($accountId: Int!, $policyId: ID, $cursor: String) {
  actor {
    account(id: $accountId) {
      alerts {
        nrqlConditionsSearch(searchCriteria: { policyId: $policyId }, cursor: $cursor) {
          nrqlConditions {"""
    + _CONDITION_FIELDS
    + """          }
          nextCursor
          totalCount
        }
      }
    }
  }
}
"""
)

POLICIES_QUERY = """
query AlertPolicies($accountId: Int!, $cursor: String) {
  actor {
    account(id: $accountId) {
      alerts {
        policiesSearch(cursor: $cursor) {
          policies { id name }
          nextCursor
        }
      }
    }
  }
}
"""

ENTITY_SEARCH_QUERY = """
query EntitySearch($query: String, $cursor: String) {
  actor {
    entitySearch(query: $query) {
      results(cursor: $cursor) {
        entities { guid name type domain }
        nextCursor
      }
    }
  }
}
"""

ENTITY_BY_GUID_QUERY = """
query EntityByGuid($guid: EntityGuid!) {
  actor {
    entity(guid: $guid) { guid name type domain }
  }
}
"""


def _quote_nrql_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


# PUBLIC_INTERFACE
def entity_search_filter(base_query: str, name: Optional[str] = None) -> str:
    """Entity search string: the configured base query, narrowed to an exact name when given."""
    if not name:
        return base_query
    name_clause = f"name = '{_quote_nrql_string(name)}'"
    return f"{base_query} AND {name_clause}" if base_query else name_clause


# PUBLIC_INTERFACE
def conditions_variables(account_id: int, cursor: Optional[str], policy_id: Optional[str] = None) -> Dict[str, Any]:
    variables: Dict[str, Any] = {"accountId": int(account_id), "cursor": cursor}
    if policy_id is not None:
        variables["policyId"] = policy_id
    return variables
