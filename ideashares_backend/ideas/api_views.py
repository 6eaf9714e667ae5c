# ideas/api_views.py
from rest_framework.decorators import api_view
from rest_framework.response import Response
from rest_framework import status

from .exceptions import FetchError, IdeaNotFound, InvalidIdea, PersistenceError
from .feed import IdeaFeed
from .funding import FundingEngine
from .serializers import IdeaSerializer, InvestmentSerializer, PostIdeaSerializer
from .store import INVESTMENTS, RecordStore


@api_view(['GET', 'POST'])
def ideas(request):
    engine = FundingEngine.from_settings(RecordStore())
    if request.method == 'POST':
        return post_idea(request, engine)

    feed = IdeaFeed(engine.store, engine)
    try:
        current = feed.refresh()
    except (FetchError, PersistenceError) as exc:
        return Response({'detail': str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(IdeaSerializer(current, many=True).data)


def post_idea(request, engine):
    serializer = PostIdeaSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        idea = engine.create_idea(**serializer.validated_data)
    except InvalidIdea as exc:
        return Response({'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    except PersistenceError as exc:
        return Response({'detail': str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(IdeaSerializer(idea).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
def idea_investments(request, pk):
    engine = FundingEngine.from_settings(RecordStore())
    try:
        idea = engine.get_idea(pk)
        investments = engine.store.query(INVESTMENTS, {'idea_id': idea.pk}, order=['invested_at'])
    except IdeaNotFound as exc:
        return Response({'detail': str(exc)}, status=status.HTTP_404_NOT_FOUND)
    except (FetchError, PersistenceError) as exc:
        return Response({'detail': str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response({
        'idea': IdeaSerializer(idea).data,
        'total_invested': str(engine.total_invested(idea.pk)),
        'investments': InvestmentSerializer(investments, many=True).data,
    })
