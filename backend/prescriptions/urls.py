from django.urls import path
from .views import (
    FingerprintSearchView,
    LatestResultView,
    LedgerView,
    PatientHistoryView,
    PrescriptionDetailView,
    PrescriptionSubmitView,
)

urlpatterns = [
    path('prescriptions/', PrescriptionSubmitView.as_view(), name='prescription-submit'),
    path('prescriptions/latest/', LatestResultView.as_view(), name='prescription-latest'),
    path('prescriptions/by-fingerprint/<str:fingerprint>/', FingerprintSearchView.as_view(), name='prescription-by-fingerprint'),
    path('prescriptions/<str:result_id>/', PrescriptionDetailView.as_view(), name='prescription-detail'),
    path('prescriptions/<str:result_id>/ledger/', LedgerView.as_view(), name='prescription-ledger'),
    path('patients/history/', PatientHistoryView.as_view(), name='patient-history'),
]
