"""
Account views: registration, login and the caller's own profile.

Registration and login are public and answer with a bearer token
(see ``core.authentication``).  Login is rate limited through DRF's
``ScopedRateThrottle`` with the ``login`` scope.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from core.authentication import issue_token
from core.serializers.auth import RegisterSerializer, LoginSerializer, ProfileUpdateSerializer
from core.services.accounts import account_payload, register_account, login_account, update_profile


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = register_account(s.validated_data)
    return Response({
        'message': 'User registered successfully',
        'token': issue_token(user),
        'user': account_payload(user),
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = login_account(request, **s.validated_data)
    return Response({
        'message': 'Login successful',
        'token': issue_token(user),
        'user': account_payload(user),
    })

# ScopedRateThrottle reads throttle_scope from the view
login_view.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'user': account_payload(request.user)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def profile_view(request):
    s = ProfileUpdateSerializer(data=request.data, partial=True, context={'user': request.user})
    s.is_valid(raise_exception=True)
    user = update_profile(request.user, s.validated_data)
    return Response({'message': 'Profile updated successfully', 'user': account_payload(user)})
