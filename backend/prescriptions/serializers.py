"""
Serializers.

Two jobs:
- AnalysisResponseSerializer and friends: schema of the model's JSON answer.
  DRF does the field checking; analysis.validate_analysis turns errors into
  AIResponseInvalid.
- serialize_*(): domain objects → JSON-able dicts for the views.
"""

from rest_framework import serializers

from .types import SEVERITY_CHOICES, STATUS_CHOICES


class StrictCharField(serializers.CharField):
    """CharField that refuses numbers and other non-strings instead of coercing them."""

    def to_internal_value(self, data):
        if not isinstance(data, str):
            self.fail('invalid')
        return super().to_internal_value(data)


class StrictIntegerField(serializers.IntegerField):
    """IntegerField that refuses numeric strings and booleans."""

    def to_internal_value(self, data):
        if isinstance(data, bool) or not isinstance(data, int):
            self.fail('invalid')
        return super().to_internal_value(data)


class IssueSerializer(serializers.Serializer):
    title = StrictCharField(allow_blank=True)
    description = StrictCharField(allow_blank=True)
    severity = serializers.ChoiceField(choices=SEVERITY_CHOICES)


class SuggestionSerializer(serializers.Serializer):
    title = StrictCharField(allow_blank=True)
    description = StrictCharField(allow_blank=True)


class DataSourcesSerializer(serializers.Serializer):
    vectorDbEntries = StrictIntegerField()
    searchQueries = StrictIntegerField()


class AnalysisResponseSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUS_CHOICES)
    issues = IssueSerializer(many=True)
    suggestions = SuggestionSerializer(many=True)
    dataSources = DataSourcesSerializer()
    imageAnalysis = StrictCharField(required=False, allow_null=True, allow_blank=True)
    historyReference = StrictCharField(required=False, allow_null=True, allow_blank=True)


def serialize_submission(result):
    """Serialize the 202 response of a submission."""
    return {
        'id': result.id,
        'status': result.status,
        'blockchainStatus': result.blockchain_status,
        'message': 'Prescription analysed and recorded. Fetch the latest result for details.',
    }


def serialize_result(result):
    return result.to_dict()


def serialize_history(results):
    """Serialize a patient's prescription history."""
    prescriptions = [r.to_dict() for r in results]
    return {
        'count': len(prescriptions),
        'prescriptions': prescriptions,
    }
