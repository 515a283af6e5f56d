"""Mock responses for Kakao Mobility directions API calls.

These mocks allow testing without making real directions API calls.
"""

from typing import Any

# =============================================================================
# Successful Route Searches
# =============================================================================

# Seoul City Hall -> Busan City Hall, primary route plus one alternative
DIRECTIONS_SUCCESS_RESPONSE: dict[str, Any] = {
    "trans_id": "018e3d7f4f3a7b2e9c1d5a6b7c8d9e0f",
    "routes": [
        {
            "result_code": 0,
            "result_msg": "길찾기 성공",
            "summary": {
                "origin": {"name": "", "x": 126.978, "y": 37.5665},
                "destination": {"name": "", "x": 129.0756, "y": 35.1796},
                "waypoints": [],
                "priority": "RECOMMEND",
                "bound": {
                    "min_x": 126.97,
                    "min_y": 35.17,
                    "max_x": 129.08,
                    "max_y": 37.57,
                },
                "fare": {"taxi": 12300, "toll": 2100},
                "distance": 12345,
                "duration": 754,
            },
            "sections": [],
        },
        {
            "result_code": 0,
            "result_msg": "길찾기 성공",
            "summary": {
                "priority": "DISTANCE",
                "fare": {"taxi": 13100, "toll": 0},
                "distance": 13010,
                "duration": 900,
            },
            "sections": [],
        },
    ],
}

# Single route without fare information
DIRECTIONS_SINGLE_ROUTE_RESPONSE: dict[str, Any] = {
    "trans_id": "018e3d7f4f3a7b2e9c1d5a6b7c8d9e10",
    "routes": [
        {
            "result_code": 0,
            "result_msg": "길찾기 성공",
            "summary": {"distance": 850, "duration": 120},
        }
    ],
}


# =============================================================================
# No Route
# =============================================================================

# Provider answered 200 but could not route between the points
DIRECTIONS_NO_ROUTE_RESPONSE: dict[str, Any] = {
    "trans_id": "018e3d7f4f3a7b2e9c1d5a6b7c8d9e11",
    "routes": [
        {
            "result_code": 104,
            "result_msg": "출발지와 도착지가 5 m 이내로 설정된 경우 경로를 탐색할 수 없음",
        }
    ],
}

DIRECTIONS_EMPTY_RESPONSE: dict[str, Any] = {
    "trans_id": "018e3d7f4f3a7b2e9c1d5a6b7c8d9e12",
    "routes": [],
}
